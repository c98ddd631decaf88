"""
Load Test for the Teamsheet Team Membership API.

Simulates many players competing for a handful of team slots so the
capacity check, activation and one-team-per-user rules run under
concurrency.

Users and teams must already exist. Point the test at them with:
    TEAMSHEET_USER_IDS=<uuid>,<uuid>,...  TEAMSHEET_TEAM_IDS=<uuid>,...
"""

import os
import random
import uuid
from locust import HttpUser, task, between, events
from locust.runners import MasterRunner


# ============== Configuration ==============

PLAYER_USERS = 500  # Number of concurrent users

# Acceptable performance under load
PERFORMANCE_THRESHOLDS = {
    "max_response_time_ms": 1000,
    "max_failure_rate": 0.05,
}


def _load_ids(variable):
    raw = os.environ.get(variable, "")
    return [value.strip() for value in raw.split(",") if value.strip()]


_seeded_user_ids = _load_ids("TEAMSHEET_USER_IDS")
_seeded_team_ids = _load_ids("TEAMSHEET_TEAM_IDS")


# ============== Test Data Helpers ==============

def get_random_user_id():
    """Get a seeded user ID, or a random one when none are configured."""
    if _seeded_user_ids:
        return random.choice(_seeded_user_ids)
    return str(uuid.uuid4())


def get_random_team_id():
    """Get a seeded team ID, or a random one when none are configured."""
    if _seeded_team_ids:
        return random.choice(_seeded_team_ids)
    return str(uuid.uuid4())


# ============== HTTP Headers ==============

def get_identity_headers(user_id):
    """Headers for requests made on behalf of a player."""
    return {
        "Content-Type": "application/json",
        "X-User-Id": user_id,
    }


def get_public_headers():
    """Generate headers for public requests."""
    return {
        "Content-Type": "application/json",
    }


# ============== Player Load Test User ==============

class PlayerUser(HttpUser):
    """
    Simulates a player moving between teams.

    Behaviors:
    - View a roster
    - Join a team (409 when full or already on a team)
    - Leave the current team
    """

    wait_time = between(1, 3)

    def on_start(self):
        """Called when user starts."""
        self.user_id = get_random_user_id()
        self.team_id = get_random_team_id()

    @task(10)
    def get_roster(self):
        """
        Read a team roster.
        Weight: 10 (most common action)
        """
        with self.client.get(
            f"/api/teams/{self.team_id}/roster",
            headers=get_public_headers(),
            name="GET /api/teams/{id}/roster",
            catch_response=True,
        ) as response:
            if response.status_code == 200:
                response.success()
            else:
                response.failure(f"Unexpected status: {response.status_code}")

    @task(5)
    def join_team(self):
        """
        Join a team.
        Weight: 5
        """
        self.team_id = get_random_team_id()
        with self.client.post(
            f"/api/teams/{self.team_id}/join",
            headers=get_identity_headers(self.user_id),
            name="POST /api/teams/{id}/join",
            catch_response=True,
        ) as response:
            if response.status_code in [200, 409]:
                # Full teams and existing memberships are expected under contention
                response.success()
            else:
                response.failure(f"Unexpected status: {response.status_code}")

    @task(3)
    def leave_team(self):
        """
        Leave the last team joined.
        Weight: 3
        """
        with self.client.post(
            f"/api/teams/{self.team_id}/leave",
            headers=get_identity_headers(self.user_id),
            name="POST /api/teams/{id}/leave",
            catch_response=True,
        ) as response:
            if response.status_code in [200, 404, 409]:
                response.success()
            else:
                response.failure(f"Unexpected status: {response.status_code}")

    @task(2)
    def get_my_team(self):
        """
        Look up the player's own team.
        Weight: 2
        """
        with self.client.get(
            "/api/teams/me",
            headers=get_identity_headers(self.user_id),
            name="GET /api/teams/me",
            catch_response=True,
        ) as response:
            if response.status_code in [200, 404]:
                response.success()
            else:
                response.failure(f"Unexpected status: {response.status_code}")


# ============== API Health Check User ==============

class HealthCheckUser(HttpUser):
    """
    Simulates health check requests to monitor API availability.
    """

    wait_time = between(10, 30)  # Less frequent checks

    @task
    def health_check(self):
        """Perform health check."""
        with self.client.get(
            "/health",
            name="GET /health",
            catch_response=True,
        ) as response:
            if response.status_code == 200:
                response.success()
            else:
                response.failure(f"Health check failed: {response.status_code}")


# ============== Load Test Events ==============

@events.init.add_listener
def on_locust_init(environment, **kwargs):
    """Called when Locust is initialized."""
    if isinstance(environment.runner, MasterRunner):
        print("Master node initialized for distributed load testing")


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Called when test starts."""
    print(f"Starting load test with {PLAYER_USERS} users")
    print(f"Seeded users: {len(_seeded_user_ids)}, seeded teams: {len(_seeded_team_ids)}")
    if not _seeded_team_ids:
        print("WARNING: no TEAMSHEET_TEAM_IDS set, joins will target unknown teams")


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    """Called when test stops."""
    if environment.stats.total:
        print("\n=== Load Test Summary ===")
        print(f"Total requests: {environment.stats.total.num_requests}")
        print(f"Total failures: {environment.stats.total.num_failures}")
        print(f"Avg response time: {environment.stats.total.avg_response_time:.2f}ms")
        print(f"Requests per second: {environment.stats.total.total_rps:.2f}")


@events.quitting.add_listener
def on_quitting(environment, **kwargs):
    """Flag runs whose failure rate or latency is out of bounds."""
    if environment.stats.total.fail_ratio > PERFORMANCE_THRESHOLDS["max_failure_rate"]:
        print(f"WARNING: High failure rate ({environment.stats.total.fail_ratio:.2%})")
        environment.process_exit_code = 1

    if environment.stats.total.avg_response_time > PERFORMANCE_THRESHOLDS["max_response_time_ms"]:
        print(f"WARNING: High response time ({environment.stats.total.avg_response_time:.2f}ms)")


# For single-node testing:
# locust -f locustfile.py -u 500 -r 50 --host http://localhost:8000
