"""Building blocks shared by services: base class, errors and ports."""
