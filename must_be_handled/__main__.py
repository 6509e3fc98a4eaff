from must_be_handled.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
