import pulumi

from config import load_config
from gcpclassic import GCPResourceBuilder
from plan import resolve_plan


def main():
    # Load YAML configuration.
    spec = load_config("config.yaml")

    try:
        plan = resolve_plan(spec)
    except Exception as e:
        pulumi.log.error(f"Failed to resolve deployment plan for '{spec.name}': {e}")
        raise

    builder = GCPResourceBuilder(plan)
    try:
        builder.build()
    except Exception as e:
        pulumi.log.error(f"Failed during resource build: {e}")
        raise

    for name, value in builder.outputs().items():
        pulumi.export(name, value)


if __name__ == "__main__":
    main()
