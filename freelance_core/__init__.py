"""
Freelance Core - Source Package

The persistence and business-rule layer behind a freelance-management
client: clients, projects, tasks, time logs and invoices stored as
whole-collection JSON blobs in a local key-value store.

DESIGN PRINCIPLES:
1. Reads fail soft, writes fail loud
2. Every save replaces the whole collection
3. One writer per collection key at a time
4. Money is Decimal, never float
5. Storage backend is swappable
"""

__version__ = "1.0.0"
__author__ = "Freelance Core Team"
