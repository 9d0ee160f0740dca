"""Estimates domain - priced proposals and public client approval"""
