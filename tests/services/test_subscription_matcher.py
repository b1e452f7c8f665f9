from __future__ import annotations

import pytest

from progress_engine.models.content import ContentItem
from progress_engine.models.subscription import Subscription
from progress_engine.services.subscription_matcher import matches, normalize_tags
from tests.conftest import make_asset


def _sub(**kw) -> Subscription:
    return Subscription.new(user_id="learner-1", **kw)


CRM_CONTACTS = make_asset(product_suite="CRM", product_concept="Contacts")


def test_exact_categories_match() -> None:
    assert matches(_sub(product_suite="CRM", product_concept="Contacts"), CRM_CONTACTS)


def test_wildcard_suite_matches() -> None:
    assert matches(_sub(product_suite="*", product_concept="Contacts"), CRM_CONTACTS)


def test_disjoint_tags_do_not_match() -> None:
    content = make_asset(product_suite="CRM", product_concept="Contacts", tags=("marketing",))
    sub = _sub(product_suite="CRM", product_concept="Contacts", tags=("sales",))
    assert not matches(sub, content)


def test_overlapping_tags_match() -> None:
    content = make_asset(tags=("marketing", "sales"))
    sub = _sub(product_suite="*", product_concept="*", tags=("sales", "finance"))
    assert matches(sub, content)


def test_unset_filters_match_only_uncategorized_content() -> None:
    bare = ContentItem(content_id="c-1", title="Untagged")
    assert matches(_sub(), bare)
    assert not matches(_sub(), CRM_CONTACTS)
    assert not matches(_sub(product_concept="Contacts"), CRM_CONTACTS)
    assert not matches(_sub(product_suite="CRM"), CRM_CONTACTS)


def test_wildcards_match_with_or_without_a_value() -> None:
    bare = ContentItem(content_id="c-1", title="Untagged")
    assert matches(_sub(product_suite="*", product_concept="*"), bare)
    assert matches(_sub(product_suite="*", product_concept="*"), CRM_CONTACTS)
    assert matches(_sub(product_suite="CRM", product_concept="*"), CRM_CONTACTS)


def test_blank_filter_counts_as_unset() -> None:
    bare = ContentItem(content_id="c-1", title="Untagged", product_suite="")
    assert matches(_sub(product_suite="", product_concept=""), bare)
    assert not matches(_sub(product_suite=""), CRM_CONTACTS)


@pytest.mark.parametrize(
    ("suite", "concept"),
    [("ERP", "Contacts"), ("CRM", "Leads"), ("crm", "Contacts")],
)
def test_category_mismatch(suite: str, concept: str) -> None:
    assert not matches(_sub(product_suite=suite, product_concept=concept), CRM_CONTACTS)


def test_concrete_filter_against_missing_category() -> None:
    bare = ContentItem(content_id="c-1", title="Untagged")
    assert not matches(_sub(product_suite="CRM"), bare)


def test_tag_filter_against_untagged_content() -> None:
    sub = _sub(product_suite="*", product_concept="*", tags=("sales",))
    assert not matches(sub, make_asset(tags=()))


def test_tags_are_trimmed_and_blanks_ignored() -> None:
    content = make_asset(tags=(" sales ",))
    assert matches(_sub(product_suite="CRM", product_concept="*", tags=("sales", "  ")), content)
    # A tag list of only blanks is no filter at all.
    assert matches(_sub(product_suite="CRM", product_concept="Contacts", tags=("", "   ")),
                   make_asset(tags=("other",)))


def test_normalize_tags() -> None:
    assert normalize_tags(None) == frozenset()
    assert normalize_tags([" a", "b ", "", " "]) == frozenset({"a", "b"})
