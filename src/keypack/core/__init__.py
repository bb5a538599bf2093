"""Format-agnostic building blocks: PEM codec, errors, shared enums."""
