"""API DTO"""
