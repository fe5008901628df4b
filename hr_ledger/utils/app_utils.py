from fastapi import HTTPException, Depends
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel
from typing import Dict, Any, Optional
import bcrypt
from bson import ObjectId
from bson.errors import InvalidId
from jose import JWTError, jwt
from hr_ledger.config import settings
from hr_ledger.db import get_db
from hr_ledger.exceptions import NotFoundError, get_forbidden_exception

from datetime import datetime, timezone, timedelta

UTC = timezone.utc

oauth2_bearer = OAuth2PasswordBearer(tokenUrl="auth/login")

secret_key = settings.SECRET_KEY
algorithm = settings.ALGORITHM


class Token(BaseModel):
    access_token: str
    token_type: str


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt()
    hashed_password = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed_password.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if isinstance(hashed_password, str):
        hashed_password = hashed_password.encode('utf-8')

    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password)


def create_access_token(payload: Dict[str, Any], expiry: timedelta):
    data_to_encode = {"data": payload}
    expiry_delta = datetime.now(UTC) + expiry
    data_to_encode.update({"exp": expiry_delta})
    encoded_data: str = jwt.encode(data_to_encode, secret_key, algorithm)

    return encoded_data


def parse_object_id(value: str, entity: str = "Entity") -> ObjectId:
    """Convert a path/query id into an ObjectId, reporting malformed ids as missing entities."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(f"{entity} not found")


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Copy a Mongo document into a JSON-friendly dict (`_id` -> `id`, ObjectIds -> str)."""
    if doc is None:
        return None
    result = {}
    for key, value in doc.items():
        if key == "_id":
            result["id"] = str(value)
        elif key == "password":
            continue
        elif isinstance(value, ObjectId):
            result[key] = str(value)
        else:
            result[key] = value
    return result


async def authenticate_user(db, email: str, password: str):
    """
    authenticates user
    args:-
        - email: the account email
        - password: password
    """
    is_valid_email = "@" in email and "." in email
    if not is_valid_email:
        return False

    user = await db.employees.find_one({"email": email})
    if not user:
        return False

    if not verify_password(plain_password=password, hashed_password=user["password"]):
        return False
    return user


async def get_current_user(token: str = Depends(oauth2_bearer), db=Depends(get_db)) -> tuple:
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
        data = payload.get("data")

        if data is None:
            raise HTTPException(status_code=401, detail="Invalid token data.")

        email: str = data.get("sub")
        if email is None:
            raise HTTPException(status_code=401, detail="Could not validate user.")

        user = await db.employees.find_one({"email": email}, {"password": 0})
        if not user:
            raise HTTPException(status_code=401, detail="User not found.")

        return user, user.get("role", "employee")

    except JWTError:
        raise HTTPException(status_code=401, detail="JWT Error - could not validate user.")


async def require_admin(user_and_type: tuple = Depends(get_current_user)) -> tuple:
    _, user_type = user_and_type
    if user_type != "admin":
        raise get_forbidden_exception()
    return user_and_type
