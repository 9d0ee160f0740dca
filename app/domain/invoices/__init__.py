"""Invoices domain - billing, payments and balances"""
