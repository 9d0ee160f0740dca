"""Third-party service clients and scheduled automation"""
