"""
Signups module - student enrollment, capacity and waitlist.
"""
