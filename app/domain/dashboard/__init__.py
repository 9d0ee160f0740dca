"""Dashboard domain - headline numbers and today's work"""
