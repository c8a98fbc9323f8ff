"""HeritageWhisper backend: record, transcribe, organize and share spoken life stories."""

__version__ = "0.1.0"
