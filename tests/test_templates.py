"""
tests/test_templates.py
Unit tests for laragen.templates (PHP rendering, no disk access).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

import pytest

from laragen.merge import ROUTES_MARKERS, SEEDERS_MARKERS
from laragen.parsers import parse_field
from laragen.rules import parse_rule
from laragen.schema import build_schema
from laragen.templates import (
    TemplateGenerator,
    migration_column,
    migration_filename,
    modify_users_filename,
    render_condition,
    render_rule,
    validation_rules,
)


_CONTROLLERS: str = "\\App\\Http\\Controllers"


@pytest.fixture()
def tpl(blog_schema) -> TemplateGenerator:
    return TemplateGenerator(blog_schema)


def _stripped(text: str) -> List[str]:
    return [line.strip() for line in text.splitlines()]


# ===========================================================================
# Naming
# ===========================================================================


class TestFilenames:

    def test_migration_filename(self) -> None:
        moment = datetime(2024, 1, 1, 12, 0, 0)
        assert migration_filename(moment, "posts") == (
            "database/migrations/2024_01_01_120000_create_posts_table.php"
        )

    def test_modify_users_filename_shares_prefix(self) -> None:
        name = modify_users_filename(datetime(2024, 3, 9, 8, 5, 7))
        assert name.startswith("database/migrations/2024_03_09_080507_")
        assert name.endswith(".php")


# ===========================================================================
# Column statements
# ===========================================================================


class TestMigrationColumn:

    @pytest.mark.parametrize(
        "name, definition, expected",
        [
            ("user_id", "foreign:users", ["$table->foreignId('user_id')->constrained('users');"]),
            ("title", "string|required|max:255", ["$table->string('title', 255);"]),
            ("body", "text|nullable", ["$table->text('body')->nullable();"]),
            (
                "status",
                "enum:draft,published|default:draft",
                ["$table->enum('status', ['draft', 'published'])->default('draft');"],
            ),
            ("price", "decimal:8,2", ["$table->decimal('price', 8, 2);"]),
            ("stock", "integer|default:0", ["$table->integer('stock')->default(0);"]),
            ("active", "boolean|default:true", ["$table->boolean('active')->default(true);"]),
            ("seen_at", "timestamp|default:now", ["$table->timestamp('seen_at')->useCurrent();"]),
            ("email", "string|unique", ["$table->string('email')->unique();"]),
        ],
    )
    def test_single_statement(self, name: str, definition: str, expected: List[str]) -> None:
        assert migration_column(name, parse_field(definition)) == expected

    def test_foreign_without_id_suffix(self) -> None:
        lines = migration_column("author", parse_field("foreign:users"))
        assert lines == [
            "$table->unsignedBigInteger('author');",
            "$table->foreign('author')->references('id')->on('users');",
        ]

    def test_index_adds_statement(self) -> None:
        lines = migration_column("slug", parse_field("string|index"))
        assert lines == ["$table->string('slug');", "$table->index('slug');"]

    def test_unknown_type_falls_back_to_string(self) -> None:
        assert migration_column("geo", parse_field("point")) == ["$table->string('geo');"]


# ===========================================================================
# Validation tokens
# ===========================================================================


class TestValidationRules:

    def test_type_rule_appended(self) -> None:
        rules = validation_rules("posts", "title", parse_field("string|required|max:255"))
        assert rules == ["required", "max:255", "string"]

    def test_storage_hints_dropped(self) -> None:
        rules = validation_rules("posts", "slug", parse_field("string|index|default:x"))
        assert rules == ["string"]

    def test_unique_gains_table_and_column(self) -> None:
        rules = validation_rules("tags", "name", parse_field("string|required|unique"))
        assert rules == ["required", "unique:tags,name", "string"]

    def test_required_becomes_sometimes_on_update(self) -> None:
        rules = validation_rules("tags", "name", parse_field("string|required"), for_update=True)
        assert rules == ["sometimes", "string"]

    def test_enum_and_foreign_implied_rules(self) -> None:
        assert validation_rules("posts", "status", parse_field("enum:a,b")) == ["in:a,b"]
        assert validation_rules("posts", "user_id", parse_field("foreign:users")) == [
            "exists:users,id"
        ]

    def test_explicit_type_rule_not_duplicated(self) -> None:
        assert validation_rules("items", "code", parse_field("string|required|string")) == [
            "required",
            "string",
        ]
        assert validation_rules("items", "qty", parse_field("integer|min:1")) == ["min:1", "integer"]


# ===========================================================================
# Policy expressions
# ===========================================================================


class TestRuleRendering:

    def test_role_condition(self) -> None:
        expr = parse_rule("role:admin")
        assert render_rule(expr, "post") == "$user->hasRole('admin')"

    def test_multi_role_condition(self) -> None:
        condition = parse_rule("role:admin,editor|owner").conditions[0]
        assert render_condition(condition, "post") == (
            "($user->hasRole('admin') || $user->hasRole('editor'))"
        )

    def test_any_rule(self) -> None:
        assert render_rule(parse_rule("role:admin|owner"), "post") == (
            "($user->hasRole('admin') || $user->id === $post->user_id)"
        )

    def test_all_rule(self) -> None:
        assert render_rule(parse_rule("authenticated,owner"), "post") == (
            "($user !== null && $user->id === $post->user_id)"
        )

    def test_field_conditions(self) -> None:
        assert render_rule(parse_rule("owner_id:self"), "post") == "$user->id === $post->owner_id"
        assert render_rule(parse_rule("status:published"), "post") == (
            "$post->status === 'published'"
        )

    def test_predicate_condition(self) -> None:
        assert render_rule(parse_rule("isAdmin")) == "$user->isAdmin()"

    def test_model_condition_without_model(self) -> None:
        assert render_rule(parse_rule("owner"), has_model=False) == "false"


# ===========================================================================
# Models
# ===========================================================================


class TestRenderModel:

    def test_post_model(self, tpl: TemplateGenerator, blog_schema) -> None:
        php = tpl.render_model(blog_schema.entities["Post"])
        lines = _stripped(php)

        assert "class Post extends Model" in lines
        assert "protected $table = 'posts';" in lines
        for marker in ("FILLABLE", "CASTS", "RELATIONS", "SCOPES"):
            assert f"// >>> AI-NATIVE {marker} START" in lines, f"Missing {marker} start marker"
            assert f"// >>> AI-NATIVE {marker} END" in lines, f"Missing {marker} end marker"
        for name in ("title", "body", "status", "user_id"):
            assert f"'{name}'," in lines, f"'{name}' should be fillable"

    def test_relation_methods(self, tpl: TemplateGenerator, blog_schema) -> None:
        lines = _stripped(tpl.render_model(blog_schema.entities["Post"]))
        assert "public function user(): BelongsTo" in lines
        assert "return $this->belongsTo(User::class);" in lines
        assert "public function comments(): HasMany" in lines
        assert "return $this->belongsToMany(Tag::class, 'post_tag');" in lines
        assert "use Illuminate\\Database\\Eloquent\\Relations\\BelongsToMany;" in lines

    def test_user_model_is_authenticatable(self, tpl: TemplateGenerator, blog_schema) -> None:
        lines = _stripped(tpl.render_model(blog_schema.entities["User"]))
        assert "class User extends Authenticatable" in lines
        assert "use HasApiTokens, HasFactory, Notifiable;" in lines
        assert "'remember_token'," in lines
        assert "'password' => 'hashed'," in lines

    def test_scopes(self) -> None:
        schema = build_schema(
            {
                "meta": {},
                "models": {
                    "Article": {
                        "fields": {"status": "string", "archived_at": "timestamp|nullable"},
                        "scopes": {
                            "published": "where:status,published",
                            "latest": "orderBy:created_at,desc",
                            "live": "whereNull:archived_at",
                            "odd": "whereHas:tags",
                        },
                    }
                },
            }
        )
        lines = _stripped(TemplateGenerator(schema).render_model(schema.entities["Article"]))
        assert "public function scopePublished($query)" in lines
        assert "return $query->where('status', 'published');" in lines
        assert "return $query->orderBy('created_at', 'desc');" in lines
        assert "return $query->whereNull('archived_at');" in lines
        assert "public function scopeOdd($query)" not in lines, "Unsupported scopes are skipped"


# ===========================================================================
# Migrations
# ===========================================================================


class TestRenderMigrations:

    def test_create_table(self, tpl: TemplateGenerator, blog_schema) -> None:
        lines = _stripped(tpl.render_migration(blog_schema.entities["Post"]))
        assert "Schema::create('posts', function (Blueprint $table) {" in lines
        assert "$table->id();" in lines
        assert "$table->string('title', 255);" in lines
        assert "$table->enum('status', ['draft', 'published'])->default('draft');" in lines
        assert "$table->foreignId('user_id')->constrained('users');" in lines
        assert "$table->timestamps();" in lines
        assert "Schema::dropIfExists('posts');" in lines

    def test_pivot(self, tpl: TemplateGenerator, blog_schema) -> None:
        lines = _stripped(tpl.render_pivot_migration(blog_schema.pivots["post_tag"]))
        assert "Schema::create('post_tag', function (Blueprint $table) {" in lines
        assert "$table->foreignId('tag_id')->constrained('tags');" in lines
        assert "$table->unique(['post_id', 'tag_id']);" in lines

    def test_modify_users_without_extra_columns(self, tpl: TemplateGenerator, blog_schema) -> None:
        lines = _stripped(tpl.render_modify_users_migration(blog_schema.entities["User"]))
        assert "Schema::table('users', function (Blueprint $table) {" in lines
        assert "Schema::create('users', function (Blueprint $table) {" not in lines
        assert "//" in lines

    def test_modify_users_adds_and_drops(self) -> None:
        schema = build_schema(
            {
                "meta": {},
                "models": {
                    "User": {
                        "table": "users",
                        "fields": {"name": "string", "bio": "text|nullable", "team_id": "foreign:teams"},
                    }
                },
            }
        )
        lines = _stripped(TemplateGenerator(schema).render_modify_users_migration(schema.entities["User"]))
        assert "$table->text('bio')->nullable();" in lines
        assert "$table->dropConstrainedForeignId('team_id');" in lines
        assert "$table->dropColumn(['bio']);" in lines
        assert "$table->string('name');" not in lines, "Default user columns are not re-added"


# ===========================================================================
# Controllers
# ===========================================================================


class TestRenderController:

    def test_post_controller(self, tpl: TemplateGenerator, blog_schema) -> None:
        lines = _stripped(tpl.render_controller(blog_schema.entities["Post"]))

        assert "class PostController extends Controller" in lines
        assert "$this->middleware('role:admin')->only(['destroy']);" in lines
        assert "return response()->json($query->paginate($request->get('per_page', 15)));" in lines
        assert "return response()->json($post, 201);" in lines
        assert "return response()->json(null, 204);" in lines
        assert "public function show(Post $post): JsonResponse" in lines

    def test_validation_blocks(self, tpl: TemplateGenerator, blog_schema) -> None:
        lines = _stripped(tpl.render_controller(blog_schema.entities["Post"]))
        assert "'title' => 'required|max:255|string'," in lines
        assert "'title' => 'sometimes|max:255|string'," in lines
        assert "'status' => 'in:draft,published'," in lines
        assert "'user_id' => 'exists:users,id'," in lines

    def test_before_create_hook(self, tpl: TemplateGenerator, blog_schema) -> None:
        lines = _stripped(tpl.render_controller(blog_schema.entities["Post"]))
        assert "$validated = $this->handleBeforeCreate($validated);" in lines
        assert "protected function handleBeforeCreate(array $data): array" in lines
        assert (
            "$data = array_map(fn ($value) => is_string($value) "
            "? trim(strip_tags($value)) : $value, $data);"
        ) in lines

    def test_only_declared_routes(self, tpl: TemplateGenerator, blog_schema) -> None:
        php = tpl.render_controller(blog_schema.entities["Tag"])
        assert "public function index(" in php
        assert "public function store(" not in php
        assert "__construct" not in php, "No policy rules means no middleware"

    def test_unique_ignores_current_row_on_update(self) -> None:
        schema = build_schema(
            {
                "meta": {},
                "models": {
                    "Tag": {
                        "fields": {"name": "string|required|unique"},
                        "routes": ["update"],
                    }
                },
            }
        )
        lines = _stripped(TemplateGenerator(schema).render_controller(schema.entities["Tag"]))
        assert "'name' => 'sometimes|string|unique:tags,name,' . $tag->id," in lines

    def test_custom_hook_action_stub(self) -> None:
        schema = build_schema(
            {
                "meta": {},
                "models": {
                    "Order": {
                        "fields": {"total": "decimal"},
                        "routes": ["delete"],
                        "hooks": {"afterDelete": ["notify_warehouse"]},
                    }
                },
            }
        )
        lines = _stripped(TemplateGenerator(schema).render_controller(schema.entities["Order"]))
        assert "$this->handleAfterDelete($order);" in lines
        assert "$this->notifyWarehouse($order);" in lines
        assert "protected function notifyWarehouse(mixed $subject): void" in lines


# ===========================================================================
# Routes
# ===========================================================================


class TestRoutes:

    def test_entity_routes(self, tpl: TemplateGenerator) -> None:
        lines = tpl.routes_section_lines()
        post = f"{_CONTROLLERS}\\PostController::class"
        assert f"Route::get('posts', [{post}, 'index']);" in lines
        assert f"Route::get('posts/{{post}}', [{post}, 'show']);" in lines
        assert f"Route::post('posts', [{post}, 'store']);" in lines
        assert f"Route::put('posts/{{post}}', [{post}, 'update']);" in lines
        assert f"Route::delete('posts/{{post}}', [{post}, 'destroy']);" in lines
        assert f"Route::get('tags', [{_CONTROLLERS}\\TagController::class, 'index']);" in lines

    def test_entities_without_routes_skipped(self, tpl: TemplateGenerator) -> None:
        assert not any("UserController" in line for line in tpl.routes_section_lines())

    def test_auth_routes(self, tpl: TemplateGenerator) -> None:
        lines = tpl.routes_section_lines()
        auth = f"{_CONTROLLERS}\\AuthController::class"
        assert f"Route::post('/register', [{auth}, 'register']);" in lines
        assert f"Route::post('/login', [{auth}, 'login']);" in lines
        assert "Route::middleware('auth:sanctum')->group(function () {" in lines
        assert f"    Route::get('/user', [{auth}, 'user']);" in lines

    def test_no_auth_routes_when_disabled(self, minimal_schema_dict: Dict[str, Any]) -> None:
        minimal_schema_dict["models"]["Item"]["routes"] = ["list"]
        lines = TemplateGenerator(build_schema(minimal_schema_dict)).routes_section_lines()
        assert lines[0] == "// Item routes"
        assert not any("AuthController" in line for line in lines)

    def test_global_middleware_and_custom_routes(self) -> None:
        schema = build_schema(
            {
                "meta": {"middlewares": ["throttle:api"]},
                "models": {"Item": {"fields": {"name": "string"}, "routes": ["list"]}},
                "custom": {
                    "routes": [
                        {
                            "method": "get",
                            "uri": "/stats",
                            "controller": "StatsController@index",
                            "name": "stats",
                        }
                    ]
                },
            }
        )
        lines = TemplateGenerator(schema).routes_section_lines()
        assert lines[0] == "Route::middleware(['throttle:api'])->group(function () {"
        assert lines[-1] == "});"
        assert (
            f"    Route::get('/stats', [{_CONTROLLERS}\\StatsController::class, 'index'])"
            "->name('stats');"
        ) in lines

    def test_routes_file_wraps_section(self, tpl: TemplateGenerator) -> None:
        php = tpl.render_routes_file()
        assert php.startswith("<?php\n\nuse Illuminate\\Support\\Facades\\Route;\n")
        assert ROUTES_MARKERS.start in php
        assert ROUTES_MARKERS.end in php
        assert php.index(ROUTES_MARKERS.start) < php.index("PostController") < php.index(
            ROUTES_MARKERS.end
        )


# ===========================================================================
# Factories & seeders
# ===========================================================================


class TestFactoriesAndSeeders:

    def test_factory(self, tpl: TemplateGenerator, blog_schema) -> None:
        lines = _stripped(tpl.render_factory(blog_schema.entities["Post"]))
        assert "class PostFactory extends Factory" in lines
        assert "'title' => fake()->sentence(3)," in lines
        assert "'user_id' => \\App\\Models\\User::factory()," in lines
        assert "public function draft(): static" in lines
        assert "public function published(): static" in lines
        assert "'status' => 'published'," in lines

    def test_seeder_with_parents(self, tpl: TemplateGenerator, blog_schema) -> None:
        lines = _stripped(tpl.render_seeder(blog_schema.entities["Post"]))
        assert "class PostSeeder extends Seeder" in lines
        assert "$userIds = User::query()->pluck('id');" in lines
        assert "->count(20)" in lines
        assert "'user_id' => $userIds->isNotEmpty() ? $userIds->random() : User::factory()," in lines

    def test_seeder_without_factory(self, tpl: TemplateGenerator, blog_schema) -> None:
        php = tpl.render_seeder(blog_schema.entities["Tag"])
        assert "// Tag has no factory; add seed rows here." in php

    def test_database_seeder(self, tpl: TemplateGenerator) -> None:
        lines = tpl.render_database_seeder(["User", "Post", "Comment", "Tag"]).splitlines()
        call_at = lines.index("        $this->call([")
        assert lines[call_at + 1] == f"            {SEEDERS_MARKERS.start}"
        assert lines[call_at + 2] == "            PostSeeder::class,"
        assert lines[call_at + 3] == f"            {SEEDERS_MARKERS.end}"

    def test_database_seeder_lines_follow_order(self) -> None:
        schema = build_schema(
            {
                "meta": {},
                "models": {
                    name: {"fields": {"a": "string"}, "seeder": True}
                    for name in ("Alpha", "Beta")
                },
            }
        )
        assert TemplateGenerator(schema).database_seeder_lines(["Beta", "Ghost", "Alpha"]) == [
            "BetaSeeder::class,",
            "AlphaSeeder::class,",
        ]


# ===========================================================================
# Policies, observers, providers
# ===========================================================================


class TestPoliciesAndProviders:

    def test_policy_rules(self, tpl: TemplateGenerator, blog_schema) -> None:
        lines = _stripped(tpl.render_policy(blog_schema.entities["Post"]))
        assert "class PostPolicy" in lines
        assert (
            "return ($user->hasRole('admin') || $user->id === $post->user_id) "
            "? Response::allow() : Response::deny();"
        ) in lines
        assert "return $user->hasRole('admin') ? Response::allow() : Response::deny();" in lines

    def test_policy_signatures(self, tpl: TemplateGenerator, blog_schema) -> None:
        lines = _stripped(tpl.render_policy(blog_schema.entities["Post"]))
        for method in ("viewAny", "view", "create", "update", "delete", "restore", "forceDelete"):
            assert any(line.startswith(f"public function {method}(") for line in lines), (
                f"Missing policy method {method}"
            )
        assert "public function viewAny(User $user): Response" in lines
        assert "public function create(User $user): Response" in lines
        assert "public function update(User $user, Post $post): Response" in lines

    def test_user_policy_variable(self, tpl: TemplateGenerator, blog_schema) -> None:
        lines = _stripped(tpl.render_policy(blog_schema.entities["User"]))
        assert "public function view(User $user, User $model): Response" in lines

    def test_observer(self, tpl: TemplateGenerator, blog_schema) -> None:
        lines = _stripped(tpl.render_observer(blog_schema.entities["Comment"]))
        assert "class CommentObserver" in lines
        assert "public function created(Comment $comment): void" in lines
        assert 'Log::info("[AI-NATIVE HOOK] created event");' in lines
        assert "use Illuminate\\Support\\Facades\\Log;" in lines

    def test_auth_service_provider(self, tpl: TemplateGenerator) -> None:
        lines = _stripped(tpl.render_auth_service_provider())
        assert "Post::class => PostPolicy::class," in lines
        assert not any("CommentPolicy" in line for line in lines)

    def test_observer_service_provider(self, tpl: TemplateGenerator) -> None:
        lines = _stripped(tpl.render_observer_service_provider())
        assert "Comment::observe(CommentObserver::class);" in lines
        assert not any("PostObserver" in line for line in lines)


# ===========================================================================
# Auth controller
# ===========================================================================


class TestAuthController:

    def test_sanctum(self, tpl: TemplateGenerator) -> None:
        php = tpl.render_auth_controller()
        assert "class AuthController extends Controller" in php
        assert "createToken" in php
        assert "public function register(" in php

    def test_session(self) -> None:
        schema = build_schema(
            {"meta": {"auth": {"enabled": True, "provider": "session"}}, "models": {}}
        )
        php = TemplateGenerator(schema).render_auth_controller()
        assert "Auth::attempt($credentials)" in php
        assert "createToken" not in php
