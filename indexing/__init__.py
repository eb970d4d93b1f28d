"""
WorkLedger Indexing Module
==========================
Composite keys and the secondary index built from them.

Components:
  - key_encoding: order-preserving composite key encode/decode/prefix
  - index_manager: index entry derivation and upkeep (put, delete, re-key)
  - scanner: primary range scans, index prefix scans, bulk transfer
"""
