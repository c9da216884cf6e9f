"""
app/api — GraphQL API Module
============================

Purpose:
  strawberry schema served at /graphql. Every field delegates to a
  QueryService; no query logic lives here.

Modules:
  - types: GraphQL object types and enums mapped from db.models records
  - pagination: forward-only cursor connections over ordered lists
  - schema: Query root, storage error masking, FastAPI router factory
"""
