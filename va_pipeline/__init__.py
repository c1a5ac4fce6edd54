"""
Valence/Arousal RMSE Pipeline

Fits ordinary least-squares models predicting self-reported valence and arousal
from eight physiological channels, predicts per (subject, video) on held-out
data and reports per-group and average RMSE.
"""

__version__ = "0.1.0"
