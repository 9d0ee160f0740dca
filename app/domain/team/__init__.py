"""Account and team domain - settings, members and permissions"""
