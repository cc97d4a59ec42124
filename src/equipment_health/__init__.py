"""
Equipment Health Predictor
Combines anomaly, failure, health-index, RUL and part-risk models into one
health prediction per sensor window
"""

__version__ = "1.0.0"
