# =============================================================================
# Unit Tests: Reference Resolver
# =============================================================================

from dataclasses import replace

from libs.rewriting import ReferenceResolver, SkipReason, split_suffix

UPLOADS = "https://example.com/wp-content/uploads"


class TestOwnedReferences:
    """References under a configured base."""

    def test_upload_url_resolves_to_migrated_file(self, resolver, make_upload):
        make_upload("2024/01/a.jpg", "2024/01/a.webp")

        result = resolver.resolve(f"{UPLOADS}/2024/01/a.jpg")

        assert result.matched is True
        assert result.skip_reason is None
        assert result.replacement == f"{UPLOADS}/2024/01/a.webp"

    def test_missing_migrated_file_is_no_target(self, resolver, make_upload):
        make_upload("2024/01/a.jpg")

        result = resolver.resolve(f"{UPLOADS}/2024/01/a.jpg")

        assert result.matched is False
        assert result.skip_reason == SkipReason.NO_TARGET
        assert result.replacement == f"{UPLOADS}/2024/01/a.jpg"

    def test_root_relative_path_maps_to_site_root(self, resolver, make_file):
        make_file("files/a.jpg", "files/a.webp")

        result = resolver.resolve("/files/a.jpg")

        assert result.matched is True
        assert result.replacement == "/files/a.webp"

    def test_query_and_fragment_are_preserved(self, resolver, make_upload):
        make_upload("b.png", "b.webp")

        result = resolver.resolve(f"{UPLOADS}/b.png?ver=2#top")

        assert result.replacement == f"{UPLOADS}/b.webp?ver=2#top"

    def test_scheme_and_host_case_are_ignored_when_matching(self, resolver, make_upload):
        make_upload("c.jpeg", "c.webp")

        result = resolver.resolve("HTTP://Example.com/wp-content/uploads/c.jpeg")

        assert result.matched is True
        assert result.replacement == "HTTP://Example.com/wp-content/uploads/c.webp"

    def test_protocol_relative_reference(self, resolver, make_upload):
        make_upload("d.png", "d.webp")

        result = resolver.resolve("//example.com/wp-content/uploads/d.png")

        assert result.replacement == "//example.com/wp-content/uploads/d.webp"

    def test_extension_swap_is_case_insensitive(self, resolver, make_upload):
        make_upload("Photo.JPG", "Photo.webp")

        result = resolver.resolve(f"{UPLOADS}/Photo.JPG")

        assert result.replacement == f"{UPLOADS}/Photo.webp"

    def test_percent_encoded_path_checked_decoded(self, resolver, make_upload):
        make_upload("my photo.jpg", "my photo.webp")

        result = resolver.resolve(f"{UPLOADS}/my%20photo.jpg")

        assert result.matched is True
        assert result.replacement == f"{UPLOADS}/my%20photo.webp"

    def test_cdn_base_maps_to_upload_dir(self, rewrite_settings, make_upload):
        config = replace(
            rewrite_settings.resolver_config(), cdn_url="https://cdn.example.net/media"
        )
        make_upload("e.jpg", "e.webp")

        result = ReferenceResolver(config).resolve("https://cdn.example.net/media/e.jpg")

        assert result.replacement == "https://cdn.example.net/media/e.webp"

    def test_site_sub_path_is_stripped_for_root_relative(self, rewrite_settings, make_upload):
        config = replace(
            rewrite_settings.resolver_config(),
            site_url="https://example.com/blog",
            home_url="https://example.com/blog",
            upload_url="https://example.com/blog/wp-content/uploads",
        )
        make_upload("f.jpg", "f.webp")

        result = ReferenceResolver(config).resolve("/blog/wp-content/uploads/f.jpg")

        assert result.replacement == "/blog/wp-content/uploads/f.webp"


class TestSkippedReferences:
    """References that must be left alone."""

    def test_external_host(self, resolver, make_upload):
        make_upload("b.png", "b.webp")

        result = resolver.resolve("http://external.com/wp-content/uploads/b.png")

        assert result.matched is False
        assert result.skip_reason == SkipReason.EXTERNAL

    def test_already_migrated(self, resolver):
        result = resolver.resolve(f"{UPLOADS}/a.webp")

        assert result.skip_reason == SkipReason.ALREADY_TARGET
        assert result.replacement == f"{UPLOADS}/a.webp"

    def test_require_local_file_needs_legacy_source(self, rewrite_settings, make_upload):
        make_upload("only.webp")
        config = rewrite_settings.resolver_config()

        strict = ReferenceResolver(config).resolve(f"{UPLOADS}/only.jpg")
        lenient = ReferenceResolver(replace(config, require_local_file=False)).resolve(
            f"{UPLOADS}/only.jpg"
        )

        assert strict.skip_reason == SkipReason.NO_TARGET
        assert lenient.matched is True
        assert lenient.replacement == f"{UPLOADS}/only.webp"

    def test_migrated_file_required_even_without_local_file_check(self, rewrite_settings):
        config = replace(rewrite_settings.resolver_config(), require_local_file=False)

        result = ReferenceResolver(config).resolve(f"{UPLOADS}/ghost.jpg")

        assert result.skip_reason == SkipReason.NO_TARGET

    def test_path_escaping_root_is_no_target(self, resolver, site_root):
        outside = site_root.parent / "secret.jpg"
        outside.write_bytes(b"\x00")
        outside.with_suffix(".webp").write_bytes(b"\x00")

        result = resolver.resolve("/../secret.jpg")

        assert result.skip_reason == SkipReason.NO_TARGET


class TestExistenceChecks:
    """The existence collaborator is injected and never cached."""

    def test_exists_called_on_every_resolution(self, rewrite_settings):
        calls = []

        def exists(path):
            calls.append(path)
            return True

        resolver = ReferenceResolver(rewrite_settings.resolver_config(), exists=exists)

        resolver.resolve(f"{UPLOADS}/a.jpg")
        first = len(calls)
        resolver.resolve(f"{UPLOADS}/a.jpg")

        assert first == 2  # legacy source and migrated file
        assert len(calls) == 2 * first

    def test_file_removed_between_calls(self, resolver, make_upload):
        _, webp = make_upload("g.jpg", "g.webp")
        assert resolver.resolve(f"{UPLOADS}/g.jpg").matched is True

        webp.unlink()

        assert resolver.resolve(f"{UPLOADS}/g.jpg").matched is False


def test_split_suffix():
    assert split_suffix("/a.jpg?x=1#y") == ("/a.jpg", "?x=1#y")
    assert split_suffix("/a.jpg#y?z") == ("/a.jpg", "#y?z")
    assert split_suffix("/a.jpg") == ("/a.jpg", "")
