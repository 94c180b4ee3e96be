"""
Freight Modules.

Business rules and transactional services layered over the Freight Kernel.
Each module contains:
- Domain models (frozen dataclasses and status enums)
- Pure rule functions (no I/O)
- Workflows (state machines)
- ORM models and a session-bound service

Modules:
- Access: Roles, permission flags, feature access, user administration
- Invoicing: Invoices, payments, status derivation
- PJO: Proforma job orders, cost confirmation, job order conversion
- Activity: Document event log
"""
