"""Request orchestration.

Manages the end-to-end workflow for one try-on request:
1. Upload both images → two public URLs
2. Submit the generation job → immediate result or job id
3. Poll the job → terminal outcome
4. Classify → GenerationResult
"""
