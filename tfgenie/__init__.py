"""TF Genie trade-finance document workflow.

Session-based processing of trade-finance documents: metadata capture,
upload, simulated OCR and template cataloging, review and final storage,
plus the SQL Server schema installer that provisions the backing database.
"""
