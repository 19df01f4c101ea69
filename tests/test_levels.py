from embedquery.resolver import embeds_to_levels


def all_prefixes(paths):
    prefixes = set()
    for path in paths:
        parts = path.split(".")
        for i in range(1, len(parts) + 1):
            prefixes.add(".".join(parts[:i]))
    return prefixes


def test_levels_group_prefixes_by_depth():
    levels = embeds_to_levels(["a.b", "a.c", "x.y"])
    assert levels == [{"a", "x"}, {"a.b", "a.c", "x.y"}]


def test_shared_prefix_collapses_to_one_join():
    levels = embeds_to_levels(["author", "author.company", "author.bestFriend"])
    assert levels == [{"author"}, {"author.company", "author.bestFriend"}]


def test_no_embeds_no_levels():
    assert embeds_to_levels([]) == []


def test_level_count_and_union_match_prefixes():
    samples = [
        ["a"],
        ["a.b.c.d"],
        ["a.b", "c", "a.b.e", "f.g.h"],
        ["author.company", "meta.reviewer.company", "author"],
    ]
    for paths in samples:
        levels = embeds_to_levels(paths)
        assert len(levels) == max(len(p.split(".")) for p in paths)
        union = set().union(*levels)
        assert union == all_prefixes(paths)
        assert sum(len(level) for level in levels) == len(union)


def test_every_prefix_sits_at_its_depth():
    levels = embeds_to_levels(["p.q.r", "s.t"])
    for depth, level in enumerate(levels):
        assert all(len(prefix.split(".")) == depth + 1 for prefix in level)
