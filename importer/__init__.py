"""
Design
======

The importer copies images which documents reference on a remote origin into
the site's own asset storage and points the documents at the local copies.

General goals:

* Every remote image is downloaded at most once. The normalised origin URL is
  recorded on the stored asset and looked up before any network call.
* Re-running an import over the same documents is harmless: bodies which
  already reference local copies have nothing left to rewrite.
* A failure to import one image never blocks the rest of the document, and a
  failure in one document never loses the progress of the documents before
  it.

There are two ways a document gets processed:

1. When a document of an eligible post type is saved with the ``publish``
   status, the ``post_save`` receiver in ``importer.signals`` either processes
   it inline or queues ``process_document_images_task`` depending on the
   ``image_processing_mode`` configuration value.
2. A bulk import walks every eligible document in slices. Starting one takes
   the run lock, creates an ``ImportRun`` record and queues the first tick.
   Each tick processes one slice, records what it visited on the run and
   queues the next tick until no unvisited documents remain. Deleting the
   lock stops the run at the next tick.

The pieces are layered so that each one can be tested on its own:

``scanner``      finds in-scope ``<img>`` references in a body
``resolver``     turns one reference into a stored asset, reusing duplicates
``rewriter``     rewrites a body using the resolver
``coordinator``  drives bulk runs
``triggers``     decides what to do when a document is saved
``stores``       thin adapters over the models, the cache and Celery
"""
