"""Record store, translation and changelog services, and their external collaborators."""
