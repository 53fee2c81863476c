"""
Celery tasks for the image importer

``batch`` holds the bulk import tick and ``documents`` the deferred import of a
single saved document. See the package docstring of ``importer`` for how they
fit together.
"""
