"""
Player Position Predictor.

Turns a handful of player attributes (pace, shooting, passing, optionally
defending) into a predicted playing position using a pre-trained
TensorFlow.js layers model evaluated with numpy:
- Best position label
- Top-3 probability ranking
- Marker on a schematic pitch

Architecture: FastAPI app + numpy forward pass + Jinja2 page
"""

__version__ = "0.1.0"
