"""Core logic for JSON Report Rows.

The Gradio UI lives in `app.py` and the command line in `cli.py`. The rest of
this package is pure functions that:
- resolve dot-path fields in nested JSON records
- expand nested arrays into one row per combination of items
- blank repeated values per owning array item and merge rows
- write the rows as xlsx, csv or json
"""
