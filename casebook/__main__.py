"""Entry point for ``python -m casebook <command>``.

Commands:
    validate – load a case and report every configuration error
    migrate  – apply the save-store schema to a SQLite database
    status   – show the saved progress of a save slot
    reset    – delete a save slot (new game)
    serve    – run the investigation API with uvicorn
"""
from casebook.cli import main

if __name__ == "__main__":
    main()
