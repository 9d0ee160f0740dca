"""Leads domain - sales pipeline, urgency scoring and conversion"""
