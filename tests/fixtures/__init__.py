"""
Test fixtures for the Position Predictor.

Contains model artifacts built in code:
- tfjs_models.py: tiny TensorFlow.js layers models (JSON dict + weights bytes)
"""
