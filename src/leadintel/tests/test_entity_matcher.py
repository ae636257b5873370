import pytest

from src.leadintel.domain.services.entity_matcher import EntityMatcher
from src.leadintel.domain.services.urls import normalize_hostname
from src.leadintel.domain.value_objects import ResultRow, TargetRef


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://acme.com", "acme.com"),
        ("http://www.Acme.com/contact?x=1", "acme.com"),
        ("acme.com/", "acme.com"),
        ("www.acme.com:8080", "acme.com"),
        ("https://shop.acme.com/", "shop.acme.com"),
        ("", None),
        (None, None),
    ],
)
def test_normalize_hostname(url, expected):
    assert normalize_hostname(url) == expected


@pytest.fixture
def matcher(uow):
    return EntityMatcher(uow.prospects)


def test_native_id_wins_over_hostname(matcher, make_prospect):
    a = make_prospect(company_name="A", external_id="place-1", website="https://other.com")
    make_prospect(company_name="B", website="https://acme.com")

    p = matcher.match(ResultRow(native_id="place-1", url="https://acme.com"))
    assert p.id == a


def test_unknown_native_id_falls_back_to_url(matcher, make_prospect):
    b = make_prospect(company_name="B", website="https://acme.com")

    p = matcher.match(ResultRow(native_id="nope", url="http://www.acme.com/about"))
    assert p.id == b


def test_exact_hostname_beats_substring(matcher, make_prospect):
    make_prospect(company_name="Older", website="https://acme.com.au")
    exact = make_prospect(company_name="Newer", website="http://www.acme.com/")

    assert matcher.match(ResultRow(url="acme.com")).id == exact


def test_substring_match_when_no_exact(matcher, make_prospect):
    shop = make_prospect(company_name="Shop", website="https://shop.acme.com")

    assert matcher.match(ResultRow(url="https://acme.com")).id == shop


def test_ties_resolved_by_creation_time(matcher, make_prospect):
    first = make_prospect(company_name="First", website="https://acme.com")
    make_prospect(company_name="Second", website="acme.com")

    assert matcher.match(ResultRow(url="acme.com")).id == first


def test_name_match_is_case_insensitive(matcher, make_prospect):
    p = make_prospect(company_name="ACME Plumbing ", website=None)

    assert matcher.match(ResultRow(name="acme plumbing")).id == p


def test_url_before_name(matcher, make_prospect):
    by_url = make_prospect(company_name="Something Else", website="https://acme.com")
    make_prospect(company_name="Acme")

    assert matcher.match(ResultRow(url="acme.com", name="Acme")).id == by_url


def test_no_match_returns_none(matcher, make_prospect):
    make_prospect(company_name="Acme", website="https://acme.com")

    assert matcher.match(ResultRow(url="https://unknown.org", name="Unknown")) is None
    assert matcher.match(ResultRow()) is None


def test_submitted_target_beats_store_wide_lookup(uow, make_prospect):
    make_prospect(company_name="Acme", website="https://acme.com")
    mine = make_prospect(company_name="Acme Branch", website="https://acme.com/branch")

    m = EntityMatcher(uow.prospects, [TargetRef(internal_id=mine, url="https://acme.com/branch")])
    assert m.match(ResultRow(url="http://www.acme.com")).id == mine


def test_submitted_target_matched_by_name(uow, make_prospect):
    make_prospect(company_name="Joe's Diner")
    mine = make_prospect(company_name="Joe's Diner")

    m = EntityMatcher(uow.prospects, [TargetRef(internal_id=mine, name="joe's diner ")])
    assert m.match(ResultRow(name="Joe's Diner")).id == mine


def test_targets_without_internal_id_are_ignored(uow, make_prospect):
    first = make_prospect(company_name="Acme", website="https://acme.com")
    make_prospect(company_name="Acme Two", website="https://acme.com")

    m = EntityMatcher(uow.prospects, [TargetRef(url="https://acme.com")])
    assert m.match(ResultRow(url="https://acme.com")).id == first
