import pytest

from embedquery.errors import EmbedResolutionError, ResolutionFailure
from embedquery.resolver import resolve_nested_path


@pytest.fixture
def post(registry):
    return registry.lookup_collection("Post")


class TestResolveSuccess:
    """Paths that cross reference fields"""

    def test_single_reference(self, registry, post):
        target = resolve_nested_path(registry, post, "author", {"author"})
        assert target.name == "User"
        assert target.physical_name == "users"

    def test_two_hops(self, registry, post):
        target = resolve_nested_path(registry, post, "author.company", {"author.company"})
        assert target.name == "Company"

    def test_reference_inside_embedded_subdocument(self, registry, post):
        target = resolve_nested_path(registry, post, "meta.reviewer.company", {"meta.reviewer.company"})
        assert target.name == "Company"

    def test_cyclic_references_follow_the_path(self, registry, post):
        path = "author.bestFriend.bestFriend.bestFriend.company"
        target = resolve_nested_path(registry, post, path, {path})
        assert target.name == "Company"


class TestRequestedFailures:
    """Explicitly requested embeds must resolve"""

    def test_unknown_segment(self, registry, post):
        with pytest.raises(EmbedResolutionError) as exc:
            resolve_nested_path(registry, post, "author.nope", {"author.nope"})
        err = exc.value
        assert err.status_code == 400
        assert err.path == "author.nope"
        assert err.sub_path == "author.nope"
        assert err.reason is ResolutionFailure.NOT_FOUND
        assert '"author.nope"' in str(err)

    def test_unknown_first_segment(self, registry, post):
        with pytest.raises(EmbedResolutionError) as exc:
            resolve_nested_path(registry, post, "missing.company", {"missing.company"})
        assert exc.value.sub_path == "missing"
        assert exc.value.reason is ResolutionFailure.NOT_FOUND

    def test_plain_terminal_field(self, registry, post):
        with pytest.raises(EmbedResolutionError) as exc:
            resolve_nested_path(registry, post, "author.name", {"author.name"})
        assert exc.value.reason is ResolutionFailure.NOT_A_REFERENCE
        assert exc.value.sub_path == "author.name"

    def test_embedded_subdocument_is_not_a_reference(self, registry, post):
        with pytest.raises(EmbedResolutionError) as exc:
            resolve_nested_path(registry, post, "meta", {"meta"})
        assert exc.value.reason is ResolutionFailure.NOT_A_REFERENCE

    def test_reference_without_target(self, registry, post):
        with pytest.raises(EmbedResolutionError) as exc:
            resolve_nested_path(registry, post, "legacyRef", {"legacyRef"})
        assert exc.value.reason is ResolutionFailure.NO_TARGET

    def test_reference_to_unregistered_collection(self, registry, post):
        with pytest.raises(EmbedResolutionError) as exc:
            resolve_nested_path(registry, post, "editor", {"editor"})
        assert exc.value.reason is ResolutionFailure.TARGET_NOT_REGISTERED
        assert exc.value.sub_path == "editor"


class TestBestEffort:
    """Paths not requested in $embed never raise"""

    @pytest.mark.parametrize("path", [
        "title",
        "author.name",
        "author.nope",
        "meta.views",
        "editor",
        "legacyRef",
        "nothing.at.all",
    ])
    def test_unresolvable_returns_none(self, registry, post, path):
        assert resolve_nested_path(registry, post, path, {"author"}) is None

    def test_prefix_of_requested_path_is_not_requested(self, registry, post):
        # only the full path "meta.reviewer" is requested, not "meta"
        assert resolve_nested_path(registry, post, "meta", {"meta.reviewer"}) is None
