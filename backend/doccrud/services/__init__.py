"""
DocCRUD Backend - Services Layer
==================================

Service Inventory:
    - RecordService: create / read / update / patch / delete over a collection
    - enrichment:    batched join of related-collection fields onto read results
"""
