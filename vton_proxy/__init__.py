"""Virtual Try-On Generation Proxy.

Azure Functions HTTP app that accepts a person photo and a garment
photo, stages both on public image hosts, runs a try-on job on a RunPod
serverless endpoint, and returns the generated image URL.
"""

__version__ = "0.1.0"
