"""
cascade-decode — integration test package

File: tests/integration/__init__.py

Purpose
- Test package marker file.

Functional requirements
- Must not trigger provider calls or network access; model output is replayed
  from fixtures.
"""
