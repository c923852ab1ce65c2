"""Referral API"""
