import os

# Settings are read at import time; provide a complete test environment
# before any application module is imported.
TEST_ENV = {
    "GEMINI_API_KEY": "test-gemini-key",
    "GEMINI_MODEL": "gemini-test",
    "GEMINI_EMBEDDING_MODEL": "embedding-test",
    "GEMINI_API_BASE_URL": "https://gemini.test/v1beta",
    "PINECONE_API_KEY": "test-pinecone-key",
    "PINECONE_BASE_URL": "https://index.pinecone.test",
    "PINECONE_INDEX_NAME": "knowledge-test",
    "PROFILE_NAME": "Jane Coach",
    "PROFILE_ROLE": "leadership coach",
    "PROFILE_STYLE": "warm and direct",
}

for key, value in TEST_ENV.items():
    os.environ.setdefault(key, value)

for key in (
    "RATE_LIMIT_MAX_PER_IP",
    "REDIS_URL",
    "DATABASE_URL",
    "PROMPT_TEMPLATE_PATH",
    "LISTMONK_BASE_URL",
    "LISTMONK_USERNAME",
    "LISTMONK_API_KEY",
):
    os.environ.pop(key, None)
