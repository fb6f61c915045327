"""Registry sync — fetch, synthesize and materialize in one run."""
