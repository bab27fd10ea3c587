"""
Catalog Domain - Entities and Aggregates.

This domain holds the read-only master data the BOM checks consult:
- Parts (part id, description, revision, lifecycle)
- Sourcing records (approved manufacturer and manufacturer part number)
"""
