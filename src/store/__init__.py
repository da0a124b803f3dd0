"""Row output layer.

This package renders resolved rows for bulk loading into the
destination table.
"""
