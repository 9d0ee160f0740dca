"""Jobs domain - work orders, status workflow, line items and notes"""
