"""
AssetGuard: upload moderation and strike escalation.

Packages:
- classifiers: image and text classifier adapters.
- moderation: pipeline, strike ledger, audit trail and asset state machine.
- services: collaborator implementations, admin and intake entry points.
- database / repositories: aiosqlite connection, schema and table access.
- configuration: YAML application config.
- scheduler: periodic maintenance jobs.
- ui: operator console.
"""
