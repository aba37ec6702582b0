"""
Sessions module - attendance and verification lifecycle of a student's
service for one opportunity.
"""
