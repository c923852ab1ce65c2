"""Admin API"""
