"""Initial VivaForm schema.

- users, profiles, quiz_profiles, quiz_leads
- nutrition_entries, water_entries, weight_entries, recommendations
- food_items, meal_templates
- articles
- subscriptions
- audit_logs, feature_toggles, tickets, ticket_replies, app_settings
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _user_fk(column: str = "user_id", nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(column, sa.Uuid(), sa.ForeignKey("users.id", ondelete=ondelete), nullable=nullable)


def upgrade() -> None:
    # Accounts
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("name", sa.String(120), nullable=True),
        sa.Column("role", sa.String(16), server_default="USER", nullable=False),
        sa.Column("tier", sa.String(16), server_default="FREE", nullable=False),
        sa.Column("email_verified", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("email_verification_token", sa.String(128), nullable=True),
        sa.Column("password_reset_token", sa.String(128), nullable=True),
        sa.Column("password_reset_expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column("must_change_password", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("role IN ('USER', 'ADMIN', 'MANAGER', 'SUPPORT')", name="ck_users_role_valid"),
        sa.CheckConstraint("tier IN ('FREE', 'PREMIUM')", name="ck_users_tier_valid"),
    )

    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk(),
        sa.Column("height_cm", sa.Float(), nullable=True),
        sa.Column("current_weight_kg", sa.Float(), nullable=True),
        sa.Column("target_weight_kg", sa.Float(), nullable=True),
        sa.Column("activity_level", sa.String(16), nullable=True),
        sa.Column("goal", sa.String(24), nullable=True),
        sa.Column("gender", sa.String(16), nullable=True),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("diet_plan", sa.String(32), nullable=True),
        sa.Column("meals_per_day", sa.Integer(), nullable=True),
        sa.Column("skip_breakfast", sa.Boolean(), nullable=True),
        sa.Column("snack_between_meals", sa.Boolean(), nullable=True),
        sa.Column("fast_food_frequency", sa.String(16), nullable=True),
        sa.Column("cook_at_home_frequency", sa.String(16), nullable=True),
        sa.Column("sleep_hours", sa.Float(), nullable=True),
        sa.Column("exercise_regularly", sa.Boolean(), nullable=True),
        sa.Column("wake_up_time", sa.String(8), nullable=True),
        sa.Column("dinner_time", sa.String(8), nullable=True),
        sa.Column("food_allergies", sa.JSON(), nullable=False),
        sa.Column("avoided_foods", sa.JSON(), nullable=False),
        sa.Column("meal_complexity", sa.String(16), nullable=True),
        sa.Column("try_new_foods", sa.Boolean(), nullable=True),
        sa.Column("cooking_time_minutes", sa.Integer(), nullable=True),
        sa.Column("eat_when_stressed", sa.Boolean(), nullable=True),
        sa.Column("main_motivation", sa.String(32), nullable=True),
        sa.Column("stress_level", sa.Integer(), nullable=True),
        sa.Column("comfort_source", sa.String(32), nullable=True),
        sa.Column("routine_confidence", sa.Integer(), nullable=True),
        sa.Column("daily_water_ml", sa.Integer(), nullable=True),
        sa.Column("want_reminders", sa.Boolean(), nullable=True),
        sa.Column("track_activity", sa.Boolean(), nullable=True),
        sa.Column("connect_health_app", sa.Boolean(), nullable=True),
        sa.Column("theme", sa.String(16), nullable=True),
        sa.Column("bmi", sa.Float(), nullable=True),
        sa.Column("bmr", sa.Integer(), nullable=True),
        sa.Column("tdee", sa.Integer(), nullable=True),
        sa.Column("recommended_calories", sa.Integer(), nullable=True),
        sa.Column("target_protein", sa.Integer(), nullable=True),
        sa.Column("target_fat", sa.Integer(), nullable=True),
        sa.Column("target_carbs", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_profiles_user_id"),
        sa.CheckConstraint(
            "activity_level IS NULL OR activity_level IN ('SEDENTARY', 'LIGHT', 'MODERATE', 'ACTIVE', 'ATHLETE')",
            name="ck_profiles_activity_level_valid",
        ),
        sa.CheckConstraint(
            "goal IS NULL OR goal IN ('LOSE_WEIGHT', 'MAINTAIN_WEIGHT', 'GAIN_WEIGHT')",
            name="ck_profiles_goal_valid",
        ),
    )

    op.create_table(
        "quiz_profiles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk(),
        sa.Column("client_id", sa.String(128), nullable=True),
        sa.Column("version", sa.String(32), nullable=True),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("diet_plan", sa.String(32), nullable=True),
        sa.Column("height_cm", sa.Float(), nullable=True),
        sa.Column("weight_kg", sa.Float(), nullable=True),
        sa.Column("bmi", sa.Float(), nullable=True),
        sa.Column("goal_type", sa.String(32), nullable=True),
        sa.Column("goal_delta_kg", sa.Float(), nullable=True),
        sa.Column("eta_months", sa.Integer(), nullable=True),
        sa.Column("meals_per_day", sa.Integer(), nullable=True),
        sa.Column("cooking_time_minutes", sa.Integer(), nullable=True),
        sa.Column("exercise_regularly", sa.Boolean(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_quiz_profiles_user_id"),
    )

    op.create_table(
        "quiz_leads",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("client_id", sa.String(128), server_default="", nullable=False),
        sa.Column("capture_type", sa.String(16), nullable=True),
        sa.Column("step", sa.Integer(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        _user_fk(nullable=True, ondelete="SET NULL"),
        *_timestamps(),
        sa.UniqueConstraint("email", "client_id", name="uq_quiz_leads_email_client_id"),
        sa.CheckConstraint(
            "capture_type IS NULL OR capture_type IN ('midpoint', 'exit', 'offer')",
            name="ck_quiz_leads_capture_type_valid",
        ),
    )

    # Tracking
    op.create_table(
        "nutrition_entries",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk(),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("meal_type", sa.String(32), nullable=False),
        sa.Column("food", sa.String(255), nullable=False),
        sa.Column("calories", sa.Integer(), nullable=False),
        sa.Column("protein", sa.Float(), nullable=False),
        sa.Column("fat", sa.Float(), nullable=False),
        sa.Column("carbs", sa.Float(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_nutrition_entries_user_date", "nutrition_entries", ["user_id", "date"])

    op.create_table(
        "water_entries",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk(),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("amount_ml", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_water_entries_user_date", "water_entries", ["user_id", "date"])

    op.create_table(
        "weight_entries",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk(),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("weight_kg", sa.Float(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_weight_entries_user_date", "weight_entries", ["user_id", "date"])

    op.create_table(
        "recommendations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk(),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("title", sa.String(180), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_recommendations_user_date", "recommendations", ["user_id", "date"])

    # Catalog
    op.create_table(
        "food_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("brand", sa.String(255), nullable=True),
        sa.Column("category", sa.String(64), nullable=False),
        sa.Column("calories", sa.Float(), nullable=False),
        sa.Column("protein", sa.Float(), nullable=False),
        sa.Column("fat", sa.Float(), nullable=False),
        sa.Column("carbs", sa.Float(), nullable=False),
        sa.Column("fiber", sa.Float(), nullable=True),
        sa.Column("sugar", sa.Float(), nullable=True),
        sa.Column("serving_size", sa.String(64), nullable=True),
        sa.Column("serving_size_grams", sa.Float(), nullable=True),
        sa.Column("barcode", sa.String(64), nullable=True),
        sa.Column("verified", sa.Boolean(), server_default=sa.false(), nullable=False),
        _user_fk("created_by", nullable=True, ondelete="SET NULL"),
        *_timestamps(),
        sa.UniqueConstraint("barcode", name="uq_food_items_barcode"),
    )
    op.create_index("ix_food_items_name", "food_items", ["name"])
    op.create_index("ix_food_items_category", "food_items", ["category"])

    op.create_table(
        "meal_templates",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("diet_plans", sa.JSON(), nullable=False),
        sa.Column("calories", sa.Float(), nullable=False),
        sa.Column("protein", sa.Float(), nullable=False),
        sa.Column("fat", sa.Float(), nullable=False),
        sa.Column("carbs", sa.Float(), nullable=False),
        sa.Column("ingredients", sa.JSON(), nullable=False),
        sa.Column("allergens", sa.JSON(), nullable=False),
        sa.Column("avoided_ingredients", sa.JSON(), nullable=False),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("cooking_time_minutes", sa.Integer(), nullable=False),
        sa.Column("complexity", sa.String(16), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "complexity IN ('simple', 'medium', 'complex')", name="ck_meal_templates_complexity_valid"
        ),
    )

    # Content
    op.create_table(
        "articles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("cover_image", sa.String(512), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("published", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("view_count", sa.Integer(), server_default="0", nullable=False),
        _user_fk("author_id", nullable=True, ondelete="SET NULL"),
        *_timestamps(),
        sa.UniqueConstraint("slug", name="uq_articles_slug"),
    )
    op.create_index("ix_articles_category", "articles", ["category"])

    # Billing
    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk(),
        sa.Column("stripe_customer_id", sa.String(255), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(255), nullable=True),
        sa.Column("stripe_price_id", sa.String(255), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_subscriptions_user_id"),
        sa.UniqueConstraint("stripe_subscription_id", name="uq_subscriptions_stripe_subscription_id"),
    )

    # Back-office
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("actor_email", sa.String(320), nullable=True),
        sa.Column("entity", sa.String(64), nullable=True),
        sa.Column("entity_id", sa.String(64), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])

    op.create_table(
        "feature_toggles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("key", sa.String(128), nullable=False),
        sa.Column("enabled", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("rollout_percent", sa.Integer(), server_default="100", nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("key", name="uq_feature_toggles_key"),
        sa.CheckConstraint(
            "rollout_percent >= 0 AND rollout_percent <= 100", name="ck_feature_toggles_rollout_percent_range"
        ),
    )

    op.create_table(
        "tickets",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk(),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("priority", sa.String(16), nullable=False),
        _user_fk("assigned_to", nullable=True, ondelete="SET NULL"),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('open', 'pending', 'resolved', 'closed')", name="ck_tickets_status_valid"
        ),
        sa.CheckConstraint(
            "priority IN ('low', 'normal', 'high', 'urgent')", name="ck_tickets_priority_valid"
        ),
    )

    op.create_table(
        "ticket_replies",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("ticket_id", sa.Uuid(), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        _user_fk("author_id", nullable=True, ondelete="SET NULL"),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("is_staff", sa.Boolean(), server_default=sa.false(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(128), primary_key=True),
        sa.Column("value", sa.JSON(), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("app_settings")
    op.drop_table("ticket_replies")
    op.drop_table("tickets")
    op.drop_table("feature_toggles")
    op.drop_index("ix_audit_logs_user_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_created_at", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("subscriptions")
    op.drop_index("ix_articles_category", table_name="articles")
    op.drop_table("articles")
    op.drop_table("meal_templates")
    op.drop_index("ix_food_items_category", table_name="food_items")
    op.drop_index("ix_food_items_name", table_name="food_items")
    op.drop_table("food_items")
    for table in ("recommendations", "weight_entries", "water_entries", "nutrition_entries"):
        op.drop_index(f"ix_{table}_user_date", table_name=table)
        op.drop_table(table)
    op.drop_table("quiz_leads")
    op.drop_table("quiz_profiles")
    op.drop_table("profiles")
    op.drop_table("users")
