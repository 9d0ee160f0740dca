"""Customer portal domain - what a client sees and can request"""
