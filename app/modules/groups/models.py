# Supabase table: groups
# This file documents the expected database schema
# Actual operations are handled via DocumentStore in app/database/document_store.py

"""
Expected Supabase table structure:

groups:
- id: text (primary key, default: gen_random_uuid()::text)
- name: text (not null)
- host_id: text (not null, references users.id)
- host_name: text (not null) - host's username when the group was created
- member_ids: text[] (not null) - always contains host_id
- created_at: timestamptz (default: now())
- updated_at: timestamptz - bumped on every membership change

Membership is stored on both sides (groups.member_ids and users.group_ids)
and only ever changed through the apply_batch function, see
app/database/models.py.
"""
