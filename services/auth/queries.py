"""SQL queries for authentication and user management."""

_USER_COLUMNS = """
        user_id,
        username,
        email,
        password_hash,
        role,
        created_at,
        updated_at,
        last_login
"""

# Query to get user by username
GET_USER_BY_USERNAME = f"""
    SELECT {_USER_COLUMNS}
    FROM marts.users
    WHERE username = %s
"""

# Query to get user by email
GET_USER_BY_EMAIL = f"""
    SELECT {_USER_COLUMNS}
    FROM marts.users
    WHERE email = %s
"""

# Query to get user by ID
GET_USER_BY_ID = f"""
    SELECT {_USER_COLUMNS}
    FROM marts.users
    WHERE user_id = %s
"""

# Query to create a new user
INSERT_USER = """
    INSERT INTO marts.users (username, email, password_hash, role, created_at, updated_at)
    VALUES (%s, %s, %s, %s, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
    RETURNING user_id
"""

# Query to update user's last login timestamp
UPDATE_USER_LAST_LOGIN = """
    UPDATE marts.users
    SET last_login = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
    WHERE user_id = %s
"""

CREATE_USERS_TABLE = """
    CREATE SCHEMA IF NOT EXISTS marts;

    CREATE TABLE IF NOT EXISTS marts.users (
        user_id SERIAL PRIMARY KEY,
        username VARCHAR(100) NOT NULL UNIQUE,
        email VARCHAR(255) NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        role VARCHAR(20) NOT NULL DEFAULT 'jobseeker'
            CHECK (role IN ('jobseeker', 'employer', 'admin')),
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        last_login TIMESTAMPTZ
    );
"""
