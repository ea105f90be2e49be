from regions import GCP_REGION_ALIASES, canonicalize


def test_alias_resolves_to_primary_region():
    assert canonicalize("europe-west") == "europe-west1"
    assert canonicalize("us-central") == "us-central1"


def test_region_without_alias_is_unchanged():
    assert canonicalize("asia-east1") == "asia-east1"


def test_alias_targets_are_canonical():
    for target in GCP_REGION_ALIASES.values():
        assert canonicalize(target) == target
