# Services package init
"""
Merit Badge Counselor Backend — Services Layer
===============================================

Service Inventory:
    - BadgeCatalog:        merit badge listing and name → id resolution
    - UploadGate:          upload policy checks, staging, promote/discard
    - ApplicationService:  transactional writer, composite reader, and the
                           submission orchestrator tying both to the gate
"""
