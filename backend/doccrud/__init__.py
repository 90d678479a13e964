"""
DocCRUD Backend - Application Package
=====================================

What:  CRUD endpoints over named collections of schemaless documents.
How:   Layered the same way on every request path:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← path/query/body extraction
    ├─────────────────────────────────────┤
    │     Services (Record operations)    │  ← one store call per operation
    ├─────────────────────────────────────┤
    │   Schemas & document helpers        │  ← pydantic contracts, id mapping
    ├─────────────────────────────────────┤
    │   Store connection (motor)          │  ← acquired at startup, injected
    └─────────────────────────────────────┘

    `doccrud.client` is the consumer side: it issues one HTTP request per
    user action and interprets the acknowledgment that comes back.
"""

__version__ = "1.0.0"
