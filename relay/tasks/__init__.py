"""RQ task definitions.

All RQ enqueue calls MUST import from this module (not services.*)
so that the worker resolves functions as `tasks.<name>`.

We define thin wrappers here so that __module__ is 'tasks',
which is what RQ serializes for job lookup.
"""


def consume_batch_job(envelopes: list[dict]) -> list[dict]:
    from services.consumer import consume_batch
    return consume_batch(envelopes)
