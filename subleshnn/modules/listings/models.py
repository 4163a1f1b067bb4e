# Supabase tables: listings, listing_images
# This file documents the expected database schema (schema v1)
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

listings:
- id: uuid (primary key, default: gen_random_uuid())
- user_id: text (not null) - owner, Supabase Auth user id
- title: text (not null) - "<location> - dd/mm/yyyy", derived at write time
- listing_type: text (not null, default: 'subletting') - values: subletting, looking_for
- property_type: text (nullable) - values: room, studio, apartment
- description: text (nullable, max 280 chars)
- price: integer (not null) - cents
- location: text (not null)
- contact_email: text (not null)
- available_from: date (nullable)
- available_to: date (nullable)
- dog_friendly: boolean (not null, default: false)
- cat_friendly: boolean (not null, default: false)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

listing_images:
- id: uuid (primary key)
- listing_id: uuid (foreign key to listings.id, not null, on delete cascade)
- image_url: text (not null) - data:image/webp;base64 full-size variant
- thumbnail_url: text (nullable) - data:image/webp;base64 thumbnail variant
- caption: text (nullable)
- is_primary: boolean (not null, default: false) - true only for position 0
- position: integer (not null, default: 0)
- created_at: timestamp (default: now())

Deleting a listing removes its images, favorites, conversations and messages.
The service deletes children explicitly, so the cascade holds even where the
foreign keys were created without ON DELETE CASCADE.
"""
