"""
Verification module - who may approve, reject or remove a student's hours,
and the decisions themselves.
"""
