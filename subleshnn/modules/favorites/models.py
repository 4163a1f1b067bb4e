# Supabase table: favorites
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

favorites:
- id: uuid (primary key)
- user_id: text (not null) - Supabase Auth user id
- listing_id: uuid (foreign key to listings.id, not null)
- created_at: timestamp (default: now())
- unique constraint on (user_id, listing_id)

A row's presence means the user favorited the listing.
"""
