"""Allow `python -m runner_daemon`."""

from runner_daemon.cli import main


if __name__ == "__main__":
    main()
