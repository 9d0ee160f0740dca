"""Inbox domain - unified conversations across email, SMS, WhatsApp and web forms"""
