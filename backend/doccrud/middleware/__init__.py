"""
DocCRUD Backend - Middleware Package
======================================

Execution order for a request (the reverse of registration order in main.py):

    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

Rate limiting rejects abusive clients before any other work; the request ID
is set before the access log line is written so both share it.
"""
