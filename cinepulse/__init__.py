"""
Cine Pulse content tracker.

This package turns the front pages of movie and series download sites
into a local catalogue.  Each submodule implements one step of the
pipeline:

1. **collect** – Fetch a source page and reduce it to its visible text.
2. **providers** – Send an extraction prompt to a text-generation
   provider (Gemini, OpenAI) and fall back through the configured
   providers in priority order until one produces usable output.
3. **extract** – Recover structured `ContentRecord` entries from the
   provider's free-form reply.  Model output is frequently malformed,
   so recovery runs in three tiers: a direct scan for self-contained
   objects, a repaired JSON array parse and, as a last resort, a
   reconstruction of individual objects from the array text.
4. **storage** – Upsert validated records into SQLite keyed on
   `(title, type)`.
5. **notify** – Email a digest of the records saved during a run.
6. **jobs** – The run driver, the extraction prompt and the daily
   scheduler that ties everything together.
7. **cli** – Command line entry point.
"""

__version__ = "0.3.0"
