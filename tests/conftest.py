"""Shared fixtures: a small folder-routed Express project written under tmp_path."""
import os

import pytest


TEACHER_CONTROLLER = '''const db = require("../config/database");

/**
 * Teacher controller
 * @enum gender: [male, female, other] - Teacher gender
 * @queryEnum status: [active, inactive, suspended] - Status filter
 */

/**
 * List all teachers with pagination
 * @queryEnum sortBy: [name, created_at] - Sort column
 */
const getAllTeachers = async (req, res) => {
  const { page = 1, limit = 10, search } = req.query;
  const offset = (page - 1) * limit;
  // await db.query("INSERT INTO audit_log (action) VALUES ('list')");
  const [rows] = await db.query(`SELECT * FROM teachers LIMIT ? OFFSET ?`, [limit, offset]);
  res.status(200).json({ status: "success", data: { teachers: rows } });
};

/**
 * Create a teacher
 * @enum designation: [PGT, TGT, PRT] - Teacher designation
 */
const createTeacher = async (req, res) => {
  const { name } = req.body;
  if (!name) {
    return res.status(400).json({ status: "error", message: "Name required" });
  }
  await db.query("INSERT INTO teachers (name) VALUES (?)", [name]);
  res.status(201).json({ status: "success", message: `Teacher ${name} created` });
};

const updateTeacher = async (req, res) => {
  const { id } = req.params;
  await db.query("UPDATE teachers SET name = ? WHERE id = ?", [req.body.name, id]);
  res.status(200).json({ status: "success" });
};

const deleteTeacher = async (req, res) => {
  // await db.query("UPDATE teachers SET deleted = 1 WHERE id = ?", [req.params.id]);
  await db.query("DELETE FROM teachers WHERE id = ?", [req.params.id]);
  res.status(200).json({ status: "success" });
};

const getTeachersByStatus = async (req, res) => {
  const { status } = req.params;
  if (!["active", "inactive", "retired"].includes(status)) {
    return res.status(400).json({ status: "error", message: `Invalid status ${status}` });
  }
  res.status(200).json({ status: "success", requestedBy: req.user.id });
};

module.exports = {
  getAllTeachers,
  createTeacher,
  updateTeacher,
  deleteTeacher,
  getTeachersByStatus,
};
'''

AUTH_CONTROLLER = '''const jwt = require("jsonwebtoken");

/**
 * Authenticate a user and issue a JWT
 */
const login = async (req, res) => {
  const { email, password } = req.body;
  if (!email) {
    return res.status(401).json({ status: "error", message: "Invalid credentials" });
  }
  res.status(200).json({ status: "success", data: { token: jwt.sign({ email }, "k") } });
};

const register = async (req, res) => {
  await db.query("INSERT INTO users (email) VALUES (?)", [req.body.email]);
  res.status(201).json({ status: "success" });
};

const logout = async (req, res) => {
  res.json({ status: "success", message: "Logged out" });
};

module.exports = { login, register, logout };
'''

AUTH_ROUTES = '''const express = require("express");
const router = express.Router();
const authController = require("../../../controllers/authController");
const { authenticateToken } = require("../../../middleware/auth");

router.post("/login", authController.login);
router.post("/register", validate(schemas.register), authController.register);
router.post("/logout", authenticateToken, authController.logout);
router.post("/forgot-password", authController.forgotPassword);

module.exports = router;
'''

TEACHER_ROUTES = '''const router = require("express").Router();
const { authenticateToken, authorize } = require("../../../middleware/auth");
const teacherController = require("../../../controllers/teacherController");

router.use(authenticateToken);

/**
 * @routeEnum status: [active, inactive, on_leave] - Teacher status
 */

router.get("/list", teacherController.getAllTeachers);
router.post("/", authorize("admin"), validate(schemas.createTeacher), teacherController.createTeacher);
router.put("/:id", teacherController.updateTeacher);
router.delete("/:id", teacherController.deleteTeacher);

/**
 * @endpointEnum status: [active, inactive] - Status of listed teachers
 */
router.get("/status/:status", teacherController.getTeachersByStatus);
router.get("/export", teacherController.exportTeachers);

module.exports = router;
'''

CATEGORY_ROUTES = '''const router = require("express").Router();
router.get("/all", categoryController.getCategories);
module.exports = router;
'''

DESIGNATION_ROUTES = '''const router = require("express").Router();
router.get("/", designationController.getDesignations);
module.exports = router;
'''

DEPARTMENT_ROUTES = '''const router = require("express").Router();
router.get("/", departmentController.getDepartments);
module.exports = router;
'''

SERVER_INFO_ROUTES = '''const router = require("express").Router();
router.get("/", serverInfoController.getServerInfo);
module.exports = router;
'''

HEALTH_ROUTES = '''const router = require("express").Router();
router.get("/health", serverInfoController.health);
module.exports = router;
'''

PROJECT_FILES = {
    "controllers/teacherController.js": TEACHER_CONTROLLER,
    "controllers/authController.js": AUTH_CONTROLLER,
    "controllers/README.md": "not a controller",
    "routes/public/Auth/index.js": AUTH_ROUTES,
    "routes/public/ServerInfo/index.js": SERVER_INFO_ROUTES,
    "routes/public/ServerInfo/health.js": HEALTH_ROUTES,
    "routes/private/Teachers/index.js": TEACHER_ROUTES,
    "routes/private/Categories/index.js": CATEGORY_ROUTES,
    "routes/private/Designations/index.js": DESIGNATION_ROUTES,
    "routes/private/Classes/Departments/index.js": DEPARTMENT_ROUTES,
    "routes/shared/helpers.js": "module.exports = {};\n",
}


def write_tree(root, files):
    """Write {relative path: content} under root and return root as str."""
    for rel, content in files.items():
        path = os.path.join(str(root), *rel.split("/"))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
    return str(root)


@pytest.fixture
def express_project(tmp_path):
    """A complete project tree: controllers/, routes/{public,private}/."""
    return write_tree(tmp_path / "backend", PROJECT_FILES)


@pytest.fixture
def make_project(tmp_path):
    """Factory writing an ad hoc project tree under tmp_path/project."""
    def make(files):
        return write_tree(tmp_path / "project", files)
    return make


@pytest.fixture
def generator_config(express_project, monkeypatch):
    from docgen import GeneratorConfig

    for var in ("PORT", "SWAGGER_OUTPUT_FILE", "SWAGGER_TITLE"):
        monkeypatch.delenv(var, raising=False)
    return GeneratorConfig(project_root=express_project)
