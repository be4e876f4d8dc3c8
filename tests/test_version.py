from cablerelay.version import DEFAULT_VERSION, build_version, sha, version


def test_build_version_defaults():
    assert build_version("", "", "") == "1.3.0"


def test_build_version_keeps_base():
    assert build_version("2.0.0", "", "") == "2.0.0"


def test_build_version_with_modifier_and_sha():
    assert build_version("2.0.0", "rc1", "abc123") == "2.0.0-rc1-abc123"


def test_build_version_sha_only():
    assert build_version("", "", "abc123") == DEFAULT_VERSION + "-abc123"


def test_version_starts_with_default():
    assert version().startswith(DEFAULT_VERSION)


def test_version_ends_with_sha_when_set():
    current_sha = sha()
    if current_sha:
        assert version().endswith("-" + current_sha)
    else:
        assert "-" not in version() or version().split("-")[0] == DEFAULT_VERSION