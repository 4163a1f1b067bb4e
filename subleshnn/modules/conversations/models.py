# Supabase tables: conversations, messages
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

conversations:
- id: uuid (primary key)
- listing_id: uuid (foreign key to listings.id, not null)
- listing_owner_id: text (not null) - owner of the listing
- inquirer_id: text (not null) - user who made contact
- last_message_at: timestamp (nullable)
- created_at: timestamp (default: now())
- unique constraint on (listing_id, inquirer_id)

messages:
- id: uuid (primary key)
- conversation_id: uuid (foreign key to conversations.id, not null)
- sender_id: text (not null)
- content: text (not null)
- created_at: timestamp (default: now())

Messages are append-only and read in created_at ascending order.
"""
