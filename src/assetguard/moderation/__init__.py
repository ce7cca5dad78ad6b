"""
Moderation core.

- moderation_pipeline: per-upload publish/reject decision.
- strike_ledger: warnings, automatic bans and the ban expiry sweep.
- audit_trail: append-only audit log with oversight queries.
- asset_lifecycle: asset creation and the single terminal transition.
"""
