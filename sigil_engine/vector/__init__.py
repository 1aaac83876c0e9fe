"""
Numeric layer - feature encoding, cosine similarity index and clustering.
"""

# Package initialization for vector module
from .encoder import IFeatureEncoder, KeywordBandEncoder
from .index import SimilarityIndex, cosine_similarity
from .clustering import PatternRecognizer, PatternLibrary, ClusterResult, PatternCluster
from .types import SimilarityMatch, PatternMatch

__all__ = [
    'IFeatureEncoder',
    'KeywordBandEncoder',
    'SimilarityIndex',
    'cosine_similarity',
    'PatternRecognizer',
    'PatternLibrary',
    'ClusterResult',
    'PatternCluster',
    'SimilarityMatch',
    'PatternMatch'
]
