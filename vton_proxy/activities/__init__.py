"""Generation pipeline activities.

Each activity performs a single unit of work for one inbound request:
- upload_images: Stage both input images on a public image host
- submit_job: Start a generation job on the backend
- poll_job: Drive an asynchronous job to a terminal state
- classify_outcome: Map every path onto one GenerationResult
"""
