"""Readable identifiers for consumer streams and ingester instances."""

from coolname import generate_slug


def generate_worker_id(prefix: str = "") -> str:
    """Generate a memorable id such as ``native-ingester-brave-golden-tiger``.

    Used to tag each consumer stream in the log context so concurrent
    streams can be told apart.
    """
    slug = generate_slug(3)
    if prefix:
        return f"{prefix}-{slug}"
    return slug
