"""Business logic services for rightsdesk.

- **embedding_client** -- timeouts and ordered parallel embedding
- **ingestion** -- validate, deduplicate, chunk, embed and store documents
- **search** -- semantic + keyword search merged by rank fusion
"""
