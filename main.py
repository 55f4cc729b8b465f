import sys

from app import main as run_app


def main():
    sys.exit(run_app())


if __name__ == "__main__":
    main()
