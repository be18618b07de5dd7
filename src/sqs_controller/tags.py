"""Tag handling for SQS queues."""

from __future__ import annotations


def intersect_tags(
    tags: dict[str, str] | None,
    desired: dict[str, str] | None,
) -> dict[str, str] | None:
    """Reduce provider-reported tags to the keys the caller declared.

    Other tooling (cost allocation, AWS itself) may add tags to a queue;
    those must not show up as drift. Values always come from the provider.

    Args:
        tags: Tags reported by SQS, or None if the queue reported none.
        desired: Tags declared in the desired spec, or None if unset.

    Returns:
        The intersected mapping. None when the provider reported no tags,
        or when nothing matched and no tags were desired, so an unset
        desired value compares equal to the result.
    """
    if tags is None:
        return None

    actual = {k: v for k, v in tags.items() if desired is not None and k in desired}
    if not actual and desired is None:
        return None
    return actual
