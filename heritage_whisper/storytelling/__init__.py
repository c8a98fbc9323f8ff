"""Story organisation: year normalisation, timeline sections and book pagination."""
