"""Reports module - hour totals, school compliance and CSV export."""
