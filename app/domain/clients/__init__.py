"""Clients domain - customer records and their history"""
