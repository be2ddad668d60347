from .profile import fold_profile
from .retriever import CandidateRetriever
from .scoring import personalized_scorer, rank, similar_scorer

__all__ = ["fold_profile", "CandidateRetriever", "personalized_scorer", "similar_scorer", "rank"]
