"""
Section rules: tag-set keys, exact matching, auto-derivation and ranking.

Everything here is a pure function over objects that expose ``tag_ids``
(and, for derivation, ``tags``), i.e. the ``Article`` and ``Section``
ORM models with their tag links already loaded.  No session is touched:
the service layer loads the snapshot, calls in, and persists whatever
comes back.

Design notes
------------
- A tag set is compared by its canonical key, the sorted tuple of its
  distinct ids.  Order in which tags were attached never matters for
  matching or grouping; it only matters for display.
- An empty tag set never matches anything, not even another empty set.
- ``derive_sections`` adds every section it creates to its working pool
  before looking at the next group, so one call never yields two sections
  for the same tag set and feeding its output back in yields nothing.
"""
import hashlib
import uuid
from typing import Iterable, Sequence

from article_api.models import Article, Section, SectionTag
from article_api.schemas import SECTION_TITLE_MAX_LENGTH

DERIVED_TITLE_SEPARATOR = ","
TAG_SET_KEY_SEPARATOR = ","

TagSetKey = tuple[uuid.UUID, ...]


# ---------------------------------------------------------------------------
# Tag-set key
# ---------------------------------------------------------------------------

def canonical_key(tag_ids: Iterable[uuid.UUID]) -> TagSetKey:
    """Return an order- and duplicate-insensitive key for *tag_ids*."""
    return tuple(sorted(set(tag_ids)))


def tag_set_digest(tag_ids: Iterable[uuid.UUID]) -> str:
    """
    Return a fixed-width hex digest of the canonical key.

    Used as the value of ``Section.derived_key`` so the database can
    enforce one derived section per tag set.
    """
    key = canonical_key(tag_ids)
    raw = TAG_SET_KEY_SEPARATOR.join(str(tag_id) for tag_id in key)
    return hashlib.sha256(raw.encode()).hexdigest()


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

def matches_section(article: Article, section: Section) -> bool:
    """
    True iff *article* carries exactly the tags of *section*.

    Subsets and supersets do not match; untagged sections and untagged
    articles never match.
    """
    key = canonical_key(section.tag_ids)
    return bool(key) and canonical_key(article.tag_ids) == key


def articles_in_section(section: Section, articles: Iterable[Article]) -> list[Article]:
    """Return the articles matching *section*, keeping their input order."""
    return [a for a in articles if matches_section(a, section)]


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

def rank_sections(sections: Sequence[Section], articles: Sequence[Article]) -> list[Section]:
    """
    Order *sections* by the number of matching articles, most first.

    ``sorted`` is stable, so sections with equal counts keep their input
    order.
    """
    counts = [sum(1 for a in articles if matches_section(a, s)) for s in sections]
    order = sorted(range(len(sections)), key=lambda i: counts[i], reverse=True)
    return [sections[i] for i in order]


# ---------------------------------------------------------------------------
# Auto-derivation
# ---------------------------------------------------------------------------

def derived_title(tag_names: Iterable[str]) -> str:
    """Comma-join *tag_names*, cut to the section title limit."""
    return DERIVED_TITLE_SEPARATOR.join(tag_names)[:SECTION_TITLE_MAX_LENGTH]


def group_by_tag_set(articles: Iterable[Article]) -> dict[TagSetKey, list[Article]]:
    """
    Group tagged articles by canonical key.

    Groups appear in the order their first article appears; untagged
    articles are dropped.
    """
    groups: dict[TagSetKey, list[Article]] = {}
    for article in articles:
        key = canonical_key(article.tag_ids)
        if key:
            groups.setdefault(key, []).append(article)
    return groups


def derive_sections(
    articles: Iterable[Article],
    existing_sections: Iterable[Section],
) -> list[Section]:
    """
    Build one new Section per tag set seen among *articles* that no
    section in *existing_sections* already covers.

    Each new section takes its title and tag order from the first article
    of its group.  The returned sections are transient; persisting them
    is the caller's job.
    """
    covered: set[TagSetKey] = {canonical_key(s.tag_ids) for s in existing_sections}

    created: list[Section] = []
    for key, group in group_by_tag_set(articles).items():
        if key in covered:
            continue

        representative = group[0]
        tags = representative.tags
        section = Section(
            id=uuid.uuid4(),
            title=derived_title(tag.name for tag in tags),
            derived_key=tag_set_digest(key),
            tag_links=[
                SectionTag(tag_id=tag.id, tag=tag, position=index)
                for index, tag in enumerate(tags)
            ],
        )
        created.append(section)
        covered.add(key)

    return created
