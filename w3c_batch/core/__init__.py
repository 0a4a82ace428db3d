"""
Core of the batch validator: models, events, sitemap resolution and the job pipeline.
"""
