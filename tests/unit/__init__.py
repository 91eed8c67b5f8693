"""
Unit tests for the Position Predictor.

Test individual components in isolation:
- Probability normalization and top-K ranking
- Layers-model format reader and numpy forward pass
- Model loader (directory, mocked HTTP, uploads)
- Predictor service (loading, status text, prediction)
- Data models and pitch geometry
"""
