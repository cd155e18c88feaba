"""Domain Ports"""
