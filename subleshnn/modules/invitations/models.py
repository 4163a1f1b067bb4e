# Supabase table: invitations
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

invitations:
- id: uuid (primary key)
- email: text (not null) - stored lowercase
- invite_code: text (unique, not null)
- invited_by: text (not null) - admin user id
- status: text (not null, default: 'pending') - values: pending, used
- created_at: timestamp (default: now())
- used_at: timestamp (nullable)

Sign-up is only allowed with a pending invitation whose email matches.
"""
