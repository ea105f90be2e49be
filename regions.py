# Legacy App Engine location names that several GCP APIs still accept,
# mapped to the concrete region they stand for.
GCP_REGION_ALIASES = {
    "europe-west": "europe-west1",
    "us-central": "us-central1",
}


def canonicalize(region: str) -> str:
    return GCP_REGION_ALIASES.get(region, region)
