"""FieldDesk API - field service management backend"""
