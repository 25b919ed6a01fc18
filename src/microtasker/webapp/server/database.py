"""SQLite persistence for users, sessions and tasks."""

import sqlite3
import json
import logging
from contextlib import closing, contextmanager
from datetime import date
from pathlib import Path
from typing import Iterator, Optional, List

from ...task import Task
from ...utils.datetime import now_utc, parse_iso_date, parse_iso_datetime, to_iso_string
from .models import User, Session


logger = logging.getLogger(__name__)


class Database:
    """SQLite database for users, sessions and tasks."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize database.

        Args:
            db_path: Path to SQLite database file
        """
        if db_path is None:
            from ...config import get_config
            config = get_config()
            config.ensure_data_dir()
            db_path = config.database_path

        self.db_path = Path(db_path)
        self.logger = logging.getLogger(__name__)
        self._init_database()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection for one operation; it is closed on exit."""
        with closing(sqlite3.connect(self.db_path)) as conn:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            with conn:
                yield conn

    def _init_database(self):
        """Initialize database schema."""
        try:
            with self._connect() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS users (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        email TEXT UNIQUE NOT NULL,
                        name TEXT,
                        password_hash TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        last_login TEXT,
                        is_active BOOLEAN DEFAULT TRUE
                    )
                """)

                conn.execute("""
                    CREATE TABLE IF NOT EXISTS sessions (
                        id TEXT PRIMARY KEY,
                        user_id INTEGER NOT NULL,
                        token_hash TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        expires_at TEXT NOT NULL,
                        is_refresh_token BOOLEAN DEFAULT FALSE,
                        device_info TEXT,
                        ip_address TEXT,
                        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
                    )
                """)

                conn.execute("""
                    CREATE TABLE IF NOT EXISTS tasks (
                        id TEXT PRIMARY KEY,
                        user_id INTEGER NOT NULL,
                        title TEXT NOT NULL,
                        category TEXT,
                        tags TEXT DEFAULT '[]',
                        priority TEXT,
                        time_estimate TEXT NOT NULL DEFAULT '2-5 min',
                        due_date TEXT,
                        completed BOOLEAN NOT NULL DEFAULT FALSE,
                        completed_at TEXT,
                        is_recurring BOOLEAN NOT NULL DEFAULT FALSE,
                        is_template BOOLEAN NOT NULL DEFAULT FALSE,
                        template_id TEXT,
                        frequency TEXT,
                        start_date TEXT,
                        end_date TEXT,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
                        FOREIGN KEY (template_id) REFERENCES tasks(id) ON DELETE CASCADE
                    )
                """)

                conn.execute("CREATE INDEX IF NOT EXISTS idx_users_email ON users(email)")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions(user_id)")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_sessions_token ON sessions(token_hash)")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_sessions_expires ON sessions(expires_at)")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user_id ON tasks(user_id)")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_template ON tasks(template_id, due_date)")

                conn.commit()
                self.logger.debug(f"Initialized database at {self.db_path}")

        except sqlite3.Error as e:
            self.logger.error(f"Failed to initialize database: {e}")
            raise

    # User Operations

    def create_user(self, email: str, password_hash: str, name: Optional[str] = None) -> User:
        """Create a new user.

        Args:
            email: Unique email address
            password_hash: Hashed password
            name: Optional display name

        Returns:
            Created User instance

        Raises:
            ValueError: If the email already exists
        """
        created_at = now_utc()
        try:
            with self._connect() as conn:
                cursor = conn.execute("""
                    INSERT INTO users (email, name, password_hash, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                """, (email, name, password_hash, created_at.isoformat(), created_at.isoformat()))
                conn.commit()
                user_id = cursor.lastrowid

        except sqlite3.IntegrityError as e:
            if 'email' in str(e):
                raise ValueError(f"User already exists with email '{email}'")
            raise

        self.logger.info(f"Created user: {email} (id={user_id})")
        return User(
            id=user_id,
            email=email,
            name=name,
            password_hash=password_hash,
            created_at=created_at,
            updated_at=created_at,
        )

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        return self._fetch_user("SELECT * FROM users WHERE id = ?", (user_id,))

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._fetch_user("SELECT * FROM users WHERE email = ?", (email,))

    def _fetch_user(self, query: str, params: tuple) -> Optional[User]:
        try:
            with self._connect() as conn:
                row = conn.execute(query, params).fetchone()
                return self._row_to_user(row) if row else None
        except sqlite3.Error as e:
            self.logger.error(f"Failed to fetch user {params}: {e}")
            return None

    def update_last_login(self, user_id: int) -> bool:
        """Update user's last login timestamp.

        Args:
            user_id: User ID

        Returns:
            True if a row was updated
        """
        with self._connect() as conn:
            cursor = conn.execute("""
                UPDATE users SET last_login = ? WHERE id = ?
            """, (now_utc().isoformat(), user_id))
            conn.commit()
            return cursor.rowcount > 0

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row['id'],
            email=row['email'],
            name=row['name'],
            password_hash=row['password_hash'],
            created_at=parse_iso_datetime(row['created_at']),
            updated_at=parse_iso_datetime(row['updated_at']),
            last_login=parse_iso_datetime(row['last_login']),
            is_active=bool(row['is_active']),
        )

    # Session Operations

    def create_session(self, session: Session) -> None:
        """Store a new session."""
        with self._connect() as conn:
            conn.execute("""
                INSERT INTO sessions
                (id, user_id, token_hash, created_at, expires_at,
                 is_refresh_token, device_info, ip_address)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                session.id,
                session.user_id,
                session.token_hash,
                session.created_at.isoformat(),
                session.expires_at.isoformat(),
                session.is_refresh_token,
                session.device_info,
                session.ip_address
            ))
            conn.commit()
        self.logger.debug(f"Created session {session.id} for user {session.user_id}")

    def get_session_by_token_hash(self, token_hash: str) -> Optional[Session]:
        try:
            with self._connect() as conn:
                row = conn.execute("""
                    SELECT * FROM sessions WHERE token_hash = ?
                """, (token_hash,)).fetchone()
                return self._row_to_session(row) if row else None
        except sqlite3.Error as e:
            self.logger.error(f"Failed to look up session: {e}")
            return None

    def get_user_sessions(self, user_id: int) -> List[Session]:
        """Get all unexpired sessions for a user."""
        with self._connect() as conn:
            cursor = conn.execute("""
                SELECT * FROM sessions
                WHERE user_id = ? AND expires_at > ?
                ORDER BY created_at DESC
            """, (user_id, now_utc().isoformat()))
            return [self._row_to_session(row) for row in cursor.fetchall()]

    def delete_session_by_token_hash(self, token_hash: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE token_hash = ?", (token_hash,))
            conn.commit()
            return cursor.rowcount > 0

    def delete_user_sessions(self, user_id: int) -> int:
        """Delete all sessions for a user.

        Returns:
            Number of sessions deleted
        """
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE user_id = ?", (user_id,))
            conn.commit()
            deleted_count = cursor.rowcount
        self.logger.debug(f"Deleted {deleted_count} sessions for user {user_id}")
        return deleted_count

    def cleanup_expired_sessions(self) -> int:
        """Delete all expired sessions.

        Returns:
            Number of sessions deleted
        """
        with self._connect() as conn:
            cursor = conn.execute("""
                DELETE FROM sessions WHERE expires_at < ?
            """, (now_utc().isoformat(),))
            conn.commit()
            deleted_count = cursor.rowcount
        if deleted_count > 0:
            self.logger.info(f"Cleaned up {deleted_count} expired sessions")
        return deleted_count

    def _row_to_session(self, row: sqlite3.Row) -> Session:
        return Session(
            id=row['id'],
            user_id=row['user_id'],
            token_hash=row['token_hash'],
            created_at=parse_iso_datetime(row['created_at']),
            expires_at=parse_iso_datetime(row['expires_at']),
            is_refresh_token=bool(row['is_refresh_token']),
            device_info=row['device_info'],
            ip_address=row['ip_address']
        )

    # Task Operations

    def create_task(self, task: Task) -> Task:
        """Insert a task; ``task.user_id`` must be set."""
        with self._connect() as conn:
            conn.execute("""
                INSERT INTO tasks
                (id, user_id, title, category, tags, priority, time_estimate, due_date,
                 completed, completed_at, is_recurring, is_template, template_id,
                 frequency, start_date, end_date, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (task.id, task.user_id) + self._task_values(task) + (
                to_iso_string(task.created_at),
                to_iso_string(task.updated_at),
            ))
            conn.commit()
        self.logger.debug(f"Created task {task.id} for user {task.user_id}")
        return task

    def update_task(self, task: Task) -> bool:
        """Persist all mutable fields of a task.

        Returns:
            True if the task existed and was updated
        """
        task.updated_at = now_utc()
        with self._connect() as conn:
            cursor = conn.execute("""
                UPDATE tasks
                SET title = ?, category = ?, tags = ?, priority = ?, time_estimate = ?,
                    due_date = ?, completed = ?, completed_at = ?, is_recurring = ?,
                    is_template = ?, template_id = ?, frequency = ?, start_date = ?,
                    end_date = ?, updated_at = ?
                WHERE id = ? AND user_id = ?
            """, self._task_values(task) + (to_iso_string(task.updated_at), task.id, task.user_id))
            conn.commit()
            return cursor.rowcount > 0

    def get_task(self, task_id: str, user_id: int) -> Optional[Task]:
        """Get a task owned by the given user."""
        with self._connect() as conn:
            row = conn.execute("""
                SELECT * FROM tasks WHERE id = ? AND user_id = ?
            """, (task_id, user_id)).fetchone()
            return self._row_to_task(row) if row else None

    def list_tasks(self, user_id: int, include_templates: bool = True) -> List[Task]:
        """List a user's tasks, newest first."""
        query = "SELECT * FROM tasks WHERE user_id = ?"
        if not include_templates:
            query += " AND is_template = 0"
        query += " ORDER BY created_at DESC"

        with self._connect() as conn:
            return [self._row_to_task(row) for row in conn.execute(query, (user_id,)).fetchall()]

    def find_instance(self, template_id: str, due_date: date) -> Optional[Task]:
        """Find the instance of a template due on a given date."""
        with self._connect() as conn:
            row = conn.execute("""
                SELECT * FROM tasks
                WHERE template_id = ? AND due_date = ?
                LIMIT 1
            """, (template_id, due_date.isoformat())).fetchone()
            return self._row_to_task(row) if row else None

    def list_instances(self, template_id: str) -> List[Task]:
        with self._connect() as conn:
            cursor = conn.execute("""
                SELECT * FROM tasks WHERE template_id = ? ORDER BY due_date
            """, (template_id,))
            return [self._row_to_task(row) for row in cursor.fetchall()]

    def delete_task(self, task_id: str, user_id: int) -> bool:
        """Delete a task; a template takes its instances with it."""
        with self._connect() as conn:
            cursor = conn.execute("""
                DELETE FROM tasks WHERE id = ? AND user_id = ?
            """, (task_id, user_id))
            conn.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            self.logger.debug(f"Deleted task {task_id}")
        return deleted

    @staticmethod
    def _task_values(task: Task) -> tuple:
        return (
            task.title,
            task.category.value if task.category else None,
            json.dumps(task.tags),
            task.priority.value if task.priority else None,
            task.time_estimate.value,
            to_iso_string(task.due_date),
            task.completed,
            to_iso_string(task.completed_at),
            task.is_recurring,
            task.is_template,
            task.template_id,
            task.frequency.value if task.frequency else None,
            to_iso_string(task.start_date),
            to_iso_string(task.end_date),
        )

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=row['id'],
            user_id=row['user_id'],
            title=row['title'],
            category=row['category'],
            tags=json.loads(row['tags'] or '[]'),
            priority=row['priority'],
            time_estimate=row['time_estimate'],
            due_date=parse_iso_date(row['due_date']),
            completed=bool(row['completed']),
            completed_at=parse_iso_datetime(row['completed_at']),
            is_recurring=bool(row['is_recurring']),
            is_template=bool(row['is_template']),
            template_id=row['template_id'],
            frequency=row['frequency'],
            start_date=parse_iso_date(row['start_date']),
            end_date=parse_iso_date(row['end_date']),
            created_at=parse_iso_datetime(row['created_at']),
            updated_at=parse_iso_datetime(row['updated_at']),
        )


# Global database instance
_db_instance: Optional[Database] = None


def get_db() -> Database:
    """Get global database instance.

    Returns:
        Database instance
    """
    global _db_instance

    if _db_instance is None:
        _db_instance = Database()

    return _db_instance


def set_db(db: Optional[Database]) -> None:
    """Install a database instance (for testing)."""
    global _db_instance
    _db_instance = db


def reset_db():
    """Reset global database instance (for testing)."""
    global _db_instance
    _db_instance = None
