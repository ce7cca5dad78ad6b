"""
Services package.

- interfaces: collaborator protocols consumed by the core.
- auth_principal_service / notification_service: SQLite collaborators.
- admin_service: role-gated administrative operations.
- asset_intake_service: per-asset pipeline tasks and the stale upload reaper.
"""
