# Supabase table: users
# This file documents the expected database schema
# Actual operations are handled via DocumentStore in app/database/document_store.py

"""
Expected Supabase table structure:

users:
- id: text (primary key, default: gen_random_uuid()::text)
- username: text (unique, not null) - trimmed, case-sensitive, at least 3 characters
- group_ids: text[] (not null, default: '{}') - written only by membership batches
- created_at: timestamptz (default: now())

The unique constraint on username closes the gap between the existence check
and the insert in UserService.create_user (violation code 23505).
"""
