"""Initial schema: users, Q&A, points, subscriptions, security and social feed.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_TABLES_IN_DROP_ORDER = (
    "post_shares",
    "post_comments",
    "post_likes",
    "posts",
    "user_languages",
    "login_history",
    "otp_challenges",
    "password_resets",
    "user_subscriptions",
    "subscription_plans",
    "daily_question_limits",
    "daily_post_limits",
    "points_ledger",
    "rewards",
    "answer_votes",
    "question_votes",
    "answers",
    "questions",
    "friendships",
    "users",
)


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            email VARCHAR(320) UNIQUE NOT NULL,
            phone VARCHAR(32) UNIQUE,
            password_hash VARCHAR(256) NOT NULL,
            about TEXT,
            tags JSONB NOT NULL DEFAULT '[]',
            joined_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            last_login TIMESTAMPTZ,
            login_count INTEGER NOT NULL DEFAULT 0
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS friendships (
            id BIGSERIAL PRIMARY KEY,
            requester_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            recipient_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            responded_at TIMESTAMPTZ,
            CONSTRAINT friendships_pair_key UNIQUE (requester_id, recipient_id)
        )
    """)

    # --- Questions & Answers ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS questions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT REFERENCES users(id) ON DELETE SET NULL,
            title VARCHAR(300) NOT NULL,
            body TEXT NOT NULL,
            tags JSONB NOT NULL DEFAULT '[]',
            answer_count INTEGER NOT NULL DEFAULT 0,
            asked_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_questions_asked ON questions(asked_at DESC)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS answers (
            id BIGSERIAL PRIMARY KEY,
            question_id BIGINT NOT NULL REFERENCES questions(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            body TEXT NOT NULL,
            answered_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            milestone_awarded_at TIMESTAMPTZ
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_answers_question ON answers(question_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS question_votes (
            id BIGSERIAL PRIMARY KEY,
            question_id BIGINT NOT NULL REFERENCES questions(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            direction VARCHAR(4) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT question_votes_question_user_key UNIQUE (question_id, user_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS answer_votes (
            id BIGSERIAL PRIMARY KEY,
            answer_id BIGINT NOT NULL REFERENCES answers(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            direction VARCHAR(4) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT answer_votes_answer_user_key UNIQUE (answer_id, user_id)
        )
    """)

    # --- Points ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS rewards (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            points INTEGER NOT NULL DEFAULT 0 CHECK (points >= 0),
            total_points_earned INTEGER NOT NULL DEFAULT 0,
            total_points_spent INTEGER NOT NULL DEFAULT 0,
            badges JSONB NOT NULL DEFAULT '[]',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_rewards_points ON rewards(points DESC)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS points_ledger (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            kind VARCHAR(16) NOT NULL,
            reason VARCHAR(128),
            counterparty_id BIGINT REFERENCES users(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_points_ledger_user_id ON points_ledger(user_id)")

    # --- Daily counters ---
    for table in ("daily_post_limits", "daily_question_limits"):
        op.execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id BIGSERIAL PRIMARY KEY,
                user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                day DATE NOT NULL,
                count INTEGER NOT NULL DEFAULT 0,
                max_allowed INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                CONSTRAINT {table}_user_day_key UNIQUE (user_id, day)
            )
        """)

    # --- Subscriptions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS subscription_plans (
            id SERIAL PRIMARY KEY,
            name VARCHAR(32) UNIQUE NOT NULL,
            price INTEGER NOT NULL,
            currency VARCHAR(3) NOT NULL DEFAULT 'INR',
            description VARCHAR(255),
            max_questions_per_day INTEGER NOT NULL,
            features JSONB NOT NULL DEFAULT '[]',
            is_active BOOLEAN NOT NULL DEFAULT true,
            sort_order INTEGER NOT NULL DEFAULT 0
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_subscriptions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            plan_id INTEGER NOT NULL REFERENCES subscription_plans(id),
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            start_date TIMESTAMPTZ NOT NULL,
            end_date TIMESTAMPTZ NOT NULL,
            payment_provider VARCHAR(16) NOT NULL,
            external_payment_id VARCHAR(128),
            amount INTEGER NOT NULL,
            currency VARCHAR(3) NOT NULL DEFAULT 'INR',
            payment_status VARCHAR(16) NOT NULL DEFAULT 'pending',
            auto_renew BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_subscriptions_user_id ON user_subscriptions(user_id)")

    # --- Access control & audit ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS password_resets (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash VARCHAR(128) UNIQUE NOT NULL,
            reset_type VARCHAR(8) NOT NULL,
            reset_value VARCHAR(320) NOT NULL,
            used BOOLEAN NOT NULL DEFAULT false,
            attempts INTEGER NOT NULL DEFAULT 0,
            expires_at TIMESTAMPTZ NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            used_at TIMESTAMPTZ
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_password_resets_user_id ON password_resets(user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS otp_challenges (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            purpose VARCHAR(16) NOT NULL,
            code_hash VARCHAR(128) NOT NULL,
            payload JSONB NOT NULL DEFAULT '{}',
            attempts INTEGER NOT NULL DEFAULT 0,
            expires_at TIMESTAMPTZ NOT NULL,
            used_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_otp_challenges_user_id ON otp_challenges(user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS login_history (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT REFERENCES users(id) ON DELETE SET NULL,
            ip_address VARCHAR(64) NOT NULL,
            user_agent VARCHAR(512),
            browser_name VARCHAR(64) NOT NULL,
            browser_version VARCHAR(32) NOT NULL DEFAULT '',
            os_name VARCHAR(64) NOT NULL,
            os_version VARCHAR(32) NOT NULL DEFAULT '',
            device_type VARCHAR(16) NOT NULL,
            status VARCHAR(16) NOT NULL,
            failure_reason VARCHAR(128),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_login_history_user_id ON login_history(user_id)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_languages (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            language VARCHAR(8) NOT NULL DEFAULT 'en',
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Social feed ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS posts (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            content TEXT NOT NULL,
            media JSONB NOT NULL DEFAULT '[]',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_posts_user_id ON posts(user_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_posts_created ON posts(created_at DESC)")

    op.execute("""
        CREATE TABLE IF NOT EXISTS post_likes (
            id BIGSERIAL PRIMARY KEY,
            post_id BIGINT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT post_likes_post_user_key UNIQUE (post_id, user_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS post_comments (
            id BIGSERIAL PRIMARY KEY,
            post_id BIGINT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            content VARCHAR(500) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_post_comments_post_id ON post_comments(post_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS post_shares (
            id BIGSERIAL PRIMARY KEY,
            post_id BIGINT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT post_shares_post_user_key UNIQUE (post_id, user_id)
        )
    """)


def downgrade() -> None:
    for table in _TABLES_IN_DROP_ORDER:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
