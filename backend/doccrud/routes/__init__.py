"""
DocCRUD Backend - API Routes Package
======================================

Route Inventory:
    - records.py:  /api/{collection} and /api/{collection}/{id}  (CRUD)
    - health.py:   GET /health                                    (liveness + store probe)

Routes stay thin: they pull values out of the request, call the record
service, and set status codes and headers. Everything else lives in services.
"""
