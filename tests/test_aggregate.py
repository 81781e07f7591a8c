from __future__ import annotations

import itertools
import random

from prfinder.aggregate import AggregatedPRs, Category, RawSources, WorkingSet, aggregate
from prfinder.github import PullRequest


def pr(name: str, repo: str = "octo/hello", number: int = 1) -> PullRequest:
    return PullRequest(
        url=f"https://github.com/{repo}/pull/{name}",
        repo=repo,
        number=number,
        title=f"PR {name}",
        author="alice",
        draft=False,
        updated_at="2024-06-15T12:00:00Z",
    )


def urls(prs: list[PullRequest]) -> list[str]:
    return [p.url for p in prs]


def test_overlapping_lists_go_to_first_category():
    a, b, c, d, e = (pr(x) for x in "ABCDE")
    raw = RawSources(
        authored=[a, b],
        review_requested=[b, c],
        assigned=[c, d],
        repo_access=[d, e],
    )

    result = aggregate(raw)

    assert urls(result[Category.AUTHORED]) == urls([a, b])
    assert urls(result[Category.REVIEW_REQUESTED]) == urls([c])
    assert urls(result[Category.ASSIGNED]) == urls([d])
    assert urls(result[Category.REPO_ACCESS]) == urls([e])
    assert result.total == 5


def test_all_empty():
    result = aggregate(RawSources())

    for category in Category:
        assert result[category] == []
    assert result.total == 0
    assert list(result.items()) == []


def test_authored_kept_as_returned():
    a, b, c = pr("A"), pr("B"), pr("C")
    result = aggregate(RawSources(authored=[c, a, b], repo_access=[a]))

    assert urls(result[Category.AUTHORED]) == urls([c, a, b])
    assert result[Category.REPO_ACCESS] == []


def test_order_preserved_within_category():
    a, b, c, d = (pr(x) for x in "ABCD")
    result = aggregate(RawSources(authored=[b], repo_access=[d, b, a, c]))

    assert urls(result[Category.REPO_ACCESS]) == urls([d, a, c])


def test_repeats_within_one_list_collapse():
    a, b = pr("A"), pr("B")
    result = aggregate(RawSources(assigned=[a, b, a]))

    assert urls(result[Category.ASSIGNED]) == urls([a, b])


def test_failed_source_contributes_nothing():
    a, b = pr("A"), pr("B")
    # review-requested query failed and came back empty
    result = aggregate(RawSources(authored=[a], review_requested=[], assigned=[b]))

    assert result[Category.REVIEW_REQUESTED] == []
    assert urls(result[Category.ASSIGNED]) == urls([b])


def test_completeness_and_exclusivity_randomized():
    rng = random.Random(1234)
    pool = [pr(str(i)) for i in range(30)]

    for _ in range(50):
        lists = [rng.sample(pool, rng.randint(0, 12)) for _ in range(4)]
        raw = RawSources(*lists)
        result = aggregate(raw)

        all_raw = {p.url for p in itertools.chain(*lists)}
        final = [p.url for _, p in result.items()]

        # nothing dropped, nothing doubled
        assert set(final) == all_raw
        assert len(final) == len(set(final))

        # each PR lands in the first list that contains it
        for category, p in result.items():
            first = next(
                cat for cat, prs in raw.by_category() if p.url in urls(prs)
            )
            assert category is first


def test_items_follow_category_order():
    a, b, c = pr("A"), pr("B"), pr("C")
    result = aggregate(RawSources(authored=[a], assigned=[b], repo_access=[c]))

    assert [cat for cat, _ in result.items()] == [
        Category.AUTHORED,
        Category.ASSIGNED,
        Category.REPO_ACCESS,
    ]


def test_working_set_remove_is_idempotent():
    a, b, c = pr("A"), pr("B"), pr("C")
    working = WorkingSet.from_aggregated(aggregate(RawSources(authored=[a, b], assigned=[c])))

    working.remove(b.url)
    once = working.entries
    working.remove(b.url)

    assert working.entries == once
    assert len(working) == 2
    assert b.url not in working
    assert a.url in working


def test_working_set_remove_unknown_url_is_noop():
    a = pr("A")
    working = WorkingSet([(Category.AUTHORED, a)])

    working.remove("https://github.com/octo/hello/pull/999")

    assert len(working) == 1


def test_working_set_empties():
    a = pr("A")
    working = WorkingSet([(Category.REPO_ACCESS, a)])
    assert working

    working.remove(a.url)

    assert not working
    assert working.entries == []


def test_aggregated_missing_category_reads_empty():
    result = AggregatedPRs(sections={Category.AUTHORED: [pr("A")]})

    assert result[Category.ASSIGNED] == []
    assert result.total == 1
