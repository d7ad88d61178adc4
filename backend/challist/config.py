from __future__ import annotations
import os
from pydantic import BaseModel

def _csv(name: str, default: str = "") -> list[str]:
    return [v.strip() for v in os.getenv(name, default).split(",") if v.strip()]

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "challist-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "Challenge List")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/challist_dev")
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")

    # Scoring
    scoring_strategy: str = os.getenv("SCORING_STRATEGY", "linear")  # linear|percent

    # Identity: ids from the OAuth provider that always get admin rights
    admin_user_ids: list[str] = _csv("ADMIN_USER_IDS")

    # Placement auditing
    audit_after_write: bool = os.getenv("AUDIT_AFTER_WRITE", "0") == "1"
    prune_dangling_completions: bool = os.getenv("PRUNE_DANGLING_COMPLETIONS", "1") == "1"

    # Verifier auto-credit on level approval (percent similarity)
    fuzzy_match_threshold: float = float(os.getenv("FUZZY_MATCH_THRESHOLD", "80"))

    # Publish sink (GitHub contents API)
    github_api_url: str = os.getenv("GITHUB_API_URL", "https://api.github.com")
    github_token: str = os.getenv("GITHUB_TOKEN", "")
    github_owner: str = os.getenv("GITHUB_OWNER", "")
    github_repo: str = os.getenv("GITHUB_REPO", "")
    publish_path: str = os.getenv("PUBLISH_PATH", "src/data/levels.json")
    publish_branch: str = os.getenv("PUBLISH_BRANCH", "staging")

settings = Settings()
