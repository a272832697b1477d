# Constants for the hybrid search pipeline. Every threshold lives here, nowhere else.

# Embeddings
EMBEDDING_DIM = 1536  # text-embedding-ada-002
EMBEDDING_PATH = "product_embedding"  # Mongo field holding the product vector

# Semantic retrieval
SIMILARITY_FLOOR = 0.80  # Atlas vectorSearchScore (cosine, rescaled to 0..1); below = discarded
CANDIDATE_MULTIPLIER = 10  # numCandidates = max(limit * CANDIDATE_MULTIPLIER, CANDIDATE_FLOOR)
CANDIDATE_FLOOR = 100

# Lexical retrieval
LEXICAL_BASELINE_SCORE = 0.75  # "exact substring match, unranked"
LEXICAL_FIELDS = ("name", "description", "category", "categories", "tags")

# Raw score -> confidence step functions, (min raw score, confidence), thresholds descending
SEMANTIC_CONFIDENCE_BANDS = (
    (0.92, 1.0),
    (0.88, 0.9),
    (0.85, 0.8),
    (0.80, 0.7),
    (0.0, 0.5),
)
LEXICAL_CONFIDENCE_BANDS = (
    (0.95, 1.0),
    (0.75, 0.8),
    (0.50, 0.6),
    (0.0, 0.4),
)

# Intent weights as (vector, lexical); each pair sums to 1.0
WEIGHTS_BRAND = (0.3, 0.7)
WEIGHTS_CATEGORY = (0.5, 0.5)
WEIGHTS_OCCASION = (0.8, 0.2)
WEIGHTS_DESCRIPTIVE = (0.7, 0.3)
WEIGHTS_DEFAULT = (0.6, 0.4)
WEIGHTS_VECTOR_ONLY = (1.0, 0.0)

# A query this long is treated as descriptive
DESCRIPTIVE_MIN_WORDS = 4
DESCRIPTIVE_MIN_CHARS = 12  # non-space characters, for unspaced (CJK) text

# LLM recommendation
RECOMMEND_TOP_N = 5
RECOMMEND_MIN_RESULTS = 2
RECOMMEND_DESC_CHARS = 80
RECOMMEND_MAX_TOKENS = 200
RECOMMEND_TEMPERATURE = 0.3

# LLM query normalization
NORMALIZE_MAX_TOKENS = 120
NORMALIZE_TEMPERATURE = 0.0

# Related products fallback
RELATED_FALLBACK_POOL = 50

# Search methods reported in the breakdown
METHOD_HYBRID = "hybrid_search"
METHOD_LEXICAL_ONLY = "lexical_only_search"
METHOD_VECTOR_ONLY = "vector_only_search"
METHOD_NO_RESULTS = "no_results"
METHOD_UNAVAILABLE = "search_unavailable"
METHOD_EMPTY_QUERY = "empty_query"
METHOD_EXACT = "exact_name_match"
METHOD_RELATED_VECTOR = "vector_similarity"
METHOD_RELATED_TAGS = "tag_similarity_fallback"

# Shown when Redis has no trending data
DEFAULT_TRENDING = (
    "黑色上衣",
    "運動服",
    "約會穿搭",
    "休閒外套",
    "夏季洋裝",
    "牛仔褲",
    "正式服裝",
    "舒適鞋子",
)
