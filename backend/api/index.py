"""
Serverless Entry Point for the namesmith API
Using Mangum for ASGI to AWS Lambda adapter
"""
from mangum import Mangum

from namesmith.main import app

# Mangum handler for serverless; lifespan builds the service container
handler = Mangum(app, lifespan="auto")
