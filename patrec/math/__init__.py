"""
Numerical core of patrec: kNN classification, PCA and LDA.
"""
