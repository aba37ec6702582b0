"""
Opportunities module - volunteer postings, browse ranking and saved marks.

API Endpoints:
- /opportunities: browse, detail, create, edit, cancel
- /saved: students' saved/skipped/discarded marks
"""
