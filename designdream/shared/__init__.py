"""
Shared Kernel Module
====================

Shared infrastructure used by the SLA bounded context and the API shell:
structured logging and HTTP middleware.

Architecture Pattern: Modular Monolith
- The sla package is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add SLA business logic to shared kernel.
"""
