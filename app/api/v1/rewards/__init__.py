"""Rewards API"""
