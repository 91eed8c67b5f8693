"""
Integration tests for the Position Predictor.

Test components together through the FastAPI app:
- JSON API endpoints (TestClient)
- HTML page rendering, form predictions and model uploads
"""
