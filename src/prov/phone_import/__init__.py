"""Phone Import Module.

This module provides bulk provisioning of desk phones from spreadsheets:
- Upload Excel/CSV files with MAC, number, vendor and model per phone
- Normalize and validate each row against the vendor catalog
- Classify rows as new, conflicting or invalid against the registry
- Commit operator decisions (import, overwrite, skip) row by row

Architecture: Clean Architecture with Hexagonal (Ports & Adapters)
"""
