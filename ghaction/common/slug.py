"""Repository slug parsing.

Slugs are GitHub identifiers in ``owner/name`` form. They look like paths but
are not, so they are split here rather than with :mod:`pathlib`.
"""

from __future__ import annotations


def repo_slug(owner: str, name: str) -> str:
    """Join ``owner`` and ``name`` into an ``owner/name`` slug.

    Examples
    --------
    >>> repo_slug("octo", "reef")
    'octo/reef'

    """
    return f"{owner}/{name}"


def parse_repo_slug(slug: str) -> tuple[str, str]:
    """Split an ``owner/name`` slug.

    Raises
    ------
    ValueError
        If ``slug`` does not contain exactly one separator with non-empty
        components on both sides.

    Examples
    --------
    >>> parse_repo_slug("octo/reef")
    ('octo', 'reef')

    """
    owner, sep, name = slug.strip().partition("/")
    if not sep or not owner or not name or "/" in name:
        msg = f"Invalid repository slug: expected 'owner/name', got {slug!r}"
        raise ValueError(msg)
    return owner, name
