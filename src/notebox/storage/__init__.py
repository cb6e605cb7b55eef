"""Persistence for the note tree, document bodies and attachments.

Layout:
    <data_dir>/
    ├── notes-meta.json                # Folder/document tree (no bodies)
    ├── notes.json                     # Legacy tree with inline bodies (read once by migration)
    ├── notes/
    │   └── <document-id>.md           # One body per document
    ├── images/
    │   └── <epoch-ms>_<name>          # Attachments referenced from bodies
    ├── flashcards.json                # Flashcard deck snapshot
    └── calendar.json                  # Calendar event snapshot
"""
