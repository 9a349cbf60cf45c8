"""
Job Marketplace Services

This package contains the core Python services:
- auth: Bearer tokens, access decisions and user accounts
- discovery: Ranked, filtered search over active postings
- jobs: Posting lifecycle (create, update, soft-delete, expire)
- recently_viewed: Visitor-local record of recently viewed postings
- shared: Database access and structured logging
"""
