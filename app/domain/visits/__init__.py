"""Visits domain - scheduled technician visits on the calendar"""
