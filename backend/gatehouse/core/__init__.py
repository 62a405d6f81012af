"""Framework glue: configuration, logging, errors and extension singletons."""
