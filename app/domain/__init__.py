"""Business domains, each laid out as schemas / repository / service / router"""
