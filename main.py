import argparse

from titanic_survival.pipeline import PipelineRunner


def main() -> None:
    """Run the full Titanic survival pipeline."""
    parser = argparse.ArgumentParser(description=main.__doc__)
    parser.add_argument("--config", default="config/default.yaml")
    args = parser.parse_args()

    runner = PipelineRunner(args.config)
    runner.run()


if __name__ == "__main__":
    main()
