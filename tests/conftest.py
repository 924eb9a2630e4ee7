"""Shared test fixtures for beeswag.

Provides throwaway Go projects written under ``tmp_path``, a ready
:class:`~beeswag.models.GeneratorConfig` for them, isolated Go environment
variables, and output state management. These fixtures are automatically
discovered by pytest and available to all test modules without explicit
imports.
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from beeswag.models import ControllerKey, GeneratorConfig
from beeswag.output import reset_output
from beeswag.session import AnalysisSession
from beeswag.syntax import GoParser


MODULE = "example.com/shop"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _isolated_go_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's Go environment out of every test."""
    for var in ("GOPATH", "GOROOT", "BEESWAG_OUTPUT_DIR", "NO_COLOR"):
        monkeypatch.delenv(var, raising=False)


# ---------------------------------------------------------------------------
# Go project builders
# ---------------------------------------------------------------------------


def write_go(root: Path, relative: str, source: str) -> Path:
    """Write dedented Go *source* to ``root/relative``, creating parent dirs."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source).lstrip(), encoding="utf-8")
    return path


ROUTER_GO = """
    // @APIVersion 1.0.0
    // @Title Shop API
    // @Description shop endpoints
    // @Contact dev@example.com
    // @BasePath /v1
    // @SecurityDefinition api_key apiKey X-API-Key header "API key auth"
    package routers

    import (
    	"example.com/shop/controllers"

    	"github.com/astaxie/beego"
    )

    func init() {
    	orders := &controllers.OrderController{}
    	ns := beego.NewNamespace("/v1",
    		beego.NSNamespace("/user",
    			beego.NSInclude(
    				&controllers.UserController{},
    			),
    		),
    		beego.NSNamespace("/order",
    			beego.NSInclude(orders),
    		),
    		beego.NSRouter("/health/", &controllers.HealthController{}),
    	)
    	beego.AddNamespace(ns)
    }
"""

USER_CONTROLLER_GO = """
    package controllers

    import (
    	"encoding/json"

    	"example.com/shop/models"

    	"github.com/astaxie/beego"
    )

    // Operations about Users
    type UserController struct {
    	beego.Controller
    }

    // @Title CreateUser
    // @Description create users
    // @Param	body		body 	models.User	true		"body for user content"
    // @Success 200 {string} created
    // @Failure 403 body is empty
    // @router / [post]
    func (u *UserController) Post() {
    	var user models.User
    	json.Unmarshal(u.Ctx.Input.RequestBody, &user)
    }

    // @Title Get
    // @Description get user by uid
    // @Param	uid		path 	string	true		"The key for staticblock"
    // @Success 200 {object} models.User
    // @Failure 403 :uid is empty
    // @router /:uid [get]
    func (u *UserController) Get() {
    }

    // @Title GetAll
    // @Description get all Users
    // @Param	limit	query	int	false	"page size"	10
    // @Success 200 {array} models.User
    // @router / [get]
    func (u *UserController) GetAll() {
    }

    func (u *UserController) helper() {
    }
"""

ORDER_CONTROLLER_GO = """
    package controllers

    import (
    	"example.com/shop/models"

    	"github.com/astaxie/beego"
    )

    // Orders placed by users
    type OrderController struct {
    	beego.Controller
    }

    // HealthController reports liveness.
    type HealthController struct {
    	beego.Controller
    }

    // @Title Find
    // @Summary find orders
    // @Param	id	path	int	true	"order id"
    // @Param	state	query	string	false	"state filter"	"open"	"open:closed"
    // @Accept json
    // @Security api_key
    // @Success 200 {object} models.Order
    // @router /:id([0-9]+) [get]
    func (o *OrderController) Find(id int, verbose bool) {
    }

    // @Title Check
    // @router / [get]
    func (h *HealthController) Check() {
    }
"""

USER_MODEL_GO = """
    package models

    import "time"

    type Status int

    const (
    	Active Status = 1
    	Banned Status = 2
    )

    // User is a shop customer.
    type User struct {
    	Id       int64     `json:"id" required:"true"`
    	Name     string    `json:"name,omitempty" description:"display name" example:"alice"`
    	Password string    `json:"-"`
    	Age      int       `default:"18"`
    	Status   Status    `json:"status"`
    	Profile  *Profile  `json:"profile"`
    	Tags     []string  `json:"tags"`
    	Created  time.Time `json:"created"`
    	Friends  []*User   `json:"friends"`
    }

    type Profile struct {
    	Email string `json:"email"`
    	Owner *User  `json:"owner"`
    }
"""


def write_shop_project(root: Path) -> Path:
    """Lay out the sample shop project used across the suite."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "go.mod").write_text(f"module {MODULE}\n\ngo 1.20\n", encoding="utf-8")
    write_go(root, "routers/router.go", ROUTER_GO)
    write_go(root, "controllers/user.go", USER_CONTROLLER_GO)
    write_go(root, "controllers/order.go", ORDER_CONTROLLER_GO)
    write_go(root, "models/user.go", USER_MODEL_GO)
    return root


@pytest.fixture
def shop_project(tmp_path: Path) -> Path:
    """A complete module-mode Go project with three controllers."""
    return write_shop_project(tmp_path / "shop")


@pytest.fixture
def fake_goroot(tmp_path: Path) -> Path:
    """A GOROOT that knows the standard packages the sample project imports."""
    goroot = tmp_path / "goroot"
    for package in ("fmt", "time", "encoding/json", "strings"):
        (goroot / "src" / package).mkdir(parents=True)
    return goroot


@pytest.fixture
def shop_config(shop_project: Path, fake_goroot: Path) -> GeneratorConfig:
    return GeneratorConfig(project_root=shop_project, module_path=MODULE, goroot=fake_goroot)


@pytest.fixture
def parser() -> GoParser:
    return GoParser()


@pytest.fixture
def session(shop_config: GeneratorConfig, parser: GoParser) -> AnalysisSession:
    return AnalysisSession(shop_config, parser)


@pytest.fixture
def user_key() -> ControllerKey:
    return ControllerKey(package_path=f"{MODULE}/controllers", name="UserController")
