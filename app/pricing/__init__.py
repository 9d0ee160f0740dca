"""Pricebook - flat-rate service items and the estimate calculator"""
