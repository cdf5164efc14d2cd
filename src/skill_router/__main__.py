"""Entry point for python -m skill_router."""


def main() -> None:
    """Run the skill-router CLI application."""
    from skill_router.cli.main import main as cli_main

    cli_main()


if __name__ == "__main__":
    main()
