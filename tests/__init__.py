"""Test suite for bodycheck.

This package contains tests for:
- Schema compilation and the tagged rule classes
- The schema validator (required, defaults, types, constraints, nested items)
- Error records and the 400 envelope
- Route-handler wrappers (request validation, error responses)
- Settings
- Endpoint-level scenarios combining all of the above
"""
