"""Search engine: filter compiler, ranked query, result assembly, envelopes."""
