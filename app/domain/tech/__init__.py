"""Technician portal domain - schedule, visits, notes and checklists"""
