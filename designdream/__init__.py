"""
DesignDream SLA Service
=======================

Business-hour SLA tracking for design requests.
"""
