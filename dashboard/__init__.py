"""
Content Dashboard - admin UI backend for schema-defined content.

Sections (defined in a JSON document) describe the fields of each content
category; records hold the content.  Submitted forms are reconciled against
the section's fields, uploaded files are stored by content hash, and
validation failures come back as per-field errors.
"""
