"""Unified inbox: channel normalization, persistence and AI triage"""
