"""
Typo Reporter backend package.

Workspace-scoped typo reports with a bounded status lifecycle and
per-workspace API access tokens, served by the FastAPI app in `typo_api.main`.
"""
