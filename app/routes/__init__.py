"""Integration and webhook routers"""
