# Supabase table: sessions
# This file documents the expected database schema
# Actual operations are handled via DocumentStore in app/database/document_store.py

"""
Expected Supabase table structure:

sessions:
- id: text (primary key, default: gen_random_uuid()::text)
- group_id: text (not null, references groups.id)
- group_name: text (not null) - copied from the group at creation, never re-synced
- host_id: text (not null) - copied from the group at creation
- host_name: text (not null) - copied from the group at creation
- is_confirmed: boolean (not null, default: false)
- session_date: timestamptz (not null)
- host_notes: text (not null, default: '')
- secret_notes: text (not null, default: '') - only shown to the host
- external_availability: text (not null, default: '')
- available_users: text[] (not null, default: '{}')
- snacks: jsonb (not null, default: '[]') - [{user_id, user_name, snack_description}]
- carpool: jsonb (not null, default: '[]') - [{driver_id, driver_name, capacity, passengers: [{user_id, user_name}]}]
- version: integer (not null, default: 1) - compared on every write
- created_at: timestamptz (default: now())
- updated_at: timestamptz

Index: (group_id, session_date desc)
"""
