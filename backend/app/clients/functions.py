import requests

from app.core.logging_config import get_logger

logger = get_logger("clients.functions")


class AccountFunctionError(Exception):
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AccountFunctionsClient:
    """
    Calls the privileged account functions (create user, change password)
    with the caller's bearer token.
    """

    def __init__(self, base_url, access_token, session=None, timeout=10):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _post(self, name, payload, fallback):
        if not self.access_token:
            raise AccountFunctionError("No active session")

        try:
            response = self.session.post(
                f"{self.base_url}/{name}",
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.access_token}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("account_function_unreachable", extra={"function": name, "error": str(e)})
            raise AccountFunctionError(fallback) from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if not response.ok or not data.get("success"):
            message = data.get("error") or data.get("detail")
            if not isinstance(message, str) or not message:
                message = fallback
            raise AccountFunctionError(message, status_code=response.status_code)

        return data

    def create_user(self, email, password, display_name, role):
        return self._post(
            "create-user",
            {
                "email": email,
                "password": password,
                "display_name": display_name,
                "role": role,
            },
            "Could not create the user",
        )

    def change_user_password(self, user_id, new_password):
        return self._post(
            "change-user-password",
            {"userId": user_id, "newPassword": new_password},
            "Could not change the password",
        )
