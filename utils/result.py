from typing import Generic, TypeVar, Optional, Callable, Union
from http import HTTPStatus

T = TypeVar('T')  # Value carried by a successful result
U = TypeVar('U')  # Value produced by a chained step

class Result(Generic[T]):
    """
    Outcome of a schedule operation: either a value or an error message.

    The status code travels with the result so that route handlers can turn
    a failure into an HTTP response without knowing which step failed.

    Attributes:
        success (bool): True when the operation produced a value
        data (Optional[T]): The value (only meaningful on success)
        error (Optional[str]): Human-readable reason (only meaningful on failure)
        status_code (HTTPStatus): 200 by default on success, 400 on failure
    """
    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        error: Optional[str] = None,
        status_code: Optional[Union[int, HTTPStatus]] = None
    ):
        self.success = success
        self.data = data
        self.error = error

        if status_code is None:
            self.status_code = HTTPStatus.OK if success else HTTPStatus.BAD_REQUEST
        else:
            self.status_code = HTTPStatus(status_code)

    @classmethod
    def ok(cls, data: T, status_code: Union[int, HTTPStatus] = HTTPStatus.OK) -> "Result[T]":
        """Wrap a value in a successful Result."""
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def fail(cls, error: str, status_code: Union[int, HTTPStatus] = HTTPStatus.BAD_REQUEST) -> "Result[T]":
        """
        Build a failed Result.

        Args:
            error (str): Reason shown to the caller or written to the log
            status_code (Union[int, HTTPStatus], optional): Defaults to 400 BAD_REQUEST.

        Returns:
            Result[T]: A failure carrying the message
        """
        return cls(success=False, error=error, status_code=status_code)

    @classmethod
    def not_found(cls, error: str = "Resource not found") -> "Result[T]":
        """Failure for absent data: no matching rows, missing file or asset (404)."""
        return cls(success=False, error=error, status_code=HTTPStatus.NOT_FOUND)

    @classmethod
    def invalid_input(cls, error: str = "Invalid input data") -> "Result[T]":
        """Failure for a bad query or upload parameter (400)."""
        return cls(success=False, error=error, status_code=HTTPStatus.BAD_REQUEST)

    @classmethod
    def server_error(cls, error: str = "Internal server error") -> "Result[T]":
        """Failure the caller cannot fix, such as a disk write error (500)."""
        return cls(success=False, error=error, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)

    def is_success(self) -> bool:
        return self.success

    def is_failure(self) -> bool:
        return not self.success

    def unwrap(self, default: Optional[T] = None) -> Optional[T]:
        """
        Return the value, or `default` when the Result is a failure.

        Args:
            default (Optional[T], optional): Fallback for failures. Defaults to None.

        Returns:
            Optional[T]: The carried value or the fallback
        """
        return self.data if self.is_success() else default

    def and_then(self, fn: Callable[[T], "Result[U]"]) -> "Result[U]":
        """
        Run the next step with this Result's value.

        A failure short-circuits: it is passed along with its message and
        status code, and `fn` is never called.

        Args:
            fn (Callable[[T], Result[U]]): Next step, itself returning a Result

        Returns:
            Result[U]: The failure unchanged, or whatever `fn` returned
        """
        if not self.is_success():
            return Result.fail(self.error or "", status_code=self.status_code)  # type: ignore
        return fn(self.data)  # type: ignore

    def on_failure(self, fn: Callable[[str], None]) -> "Result[T]":
        """
        Call `fn` with the error message if this Result is a failure.

        Returns:
            Result[T]: self, so calls can be chained
        """
        if not self.is_success():
            fn(self.error or "")
        return self

    def __str__(self) -> str:
        status_info = f"{self.status_code.value} {self.status_code.phrase}"
        if self.is_success():
            data_repr = str(self.data)
            if len(data_repr) > 100:
                data_repr = f"{data_repr[:97]}..."
            return f"Success ({status_info}): {data_repr}"
        return f"Failure ({status_info}): {self.error}"

    def __repr__(self) -> str:
        return f"Result(success={self.success}, status_code={self.status_code!r}, data={self.data!r}, error={self.error!r})"
