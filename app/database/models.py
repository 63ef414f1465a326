# Database-wide objects that are not tied to a single module.
# Tables are documented next to their services in app/modules/*/models.py.

"""
Atomic batch writes are applied by a Postgres function called through RPC.
Every operation in the payload runs inside the function's transaction, so a
batch either lands completely or not at all.

Payload: {"operations": [{"collection", "doc_id", "fields", "array_append", "array_remove"}]}

create or replace function apply_batch(operations jsonb)
returns void
language plpgsql
as $$
declare
  op jsonb;
  kv record;
  touched integer;
begin
  for op in select * from jsonb_array_elements(operations) loop
    for kv in select * from jsonb_each(coalesce(op->'fields', '{}'::jsonb)) loop
      execute format(
        'update %1$I set %2$I = (jsonb_populate_record(null::%1$I, jsonb_build_object(%3$L, $1))).%2$I where id = $2',
        op->>'collection', kv.key, kv.key
      ) using kv.value, op->>'doc_id';
    end loop;

    for kv in select * from jsonb_each_text(coalesce(op->'array_append', '{}'::jsonb)) loop
      execute format(
        'update %1$I set %2$I = array_append(array_remove(%2$I, $1), $1) where id = $2',
        op->>'collection', kv.key
      ) using kv.value, op->>'doc_id';
    end loop;

    for kv in select * from jsonb_each_text(coalesce(op->'array_remove', '{}'::jsonb)) loop
      execute format(
        'update %1$I set %2$I = array_remove(%2$I, $1) where id = $2',
        op->>'collection', kv.key
      ) using kv.value, op->>'doc_id';
    end loop;

    execute format('select count(*) from %I where id = $1', op->>'collection')
      into touched using op->>'doc_id';
    if touched = 0 then
      raise exception 'document %/% not found', op->>'collection', op->>'doc_id'
        using errcode = 'no_data_found';
    end if;
  end loop;
end;
$$;

Realtime must be enabled for the groups and sessions tables:

alter publication supabase_realtime add table groups, sessions;
"""
