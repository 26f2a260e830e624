from fastapi import APIRouter, HTTPException, status, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from ..database import get_db
from .. import schemas, models, oauth2, utils

router = APIRouter(tags=["Authentication"])


def authenticate(db: Session, username: str, password: str):
    """Return the shopper for these credentials, or None."""
    user = db.query(models.User).filter(models.User.username == username).first()
    if user is None or not utils.verify(password, user.hashed_password):
        return None
    return user


@router.post("/login", status_code=status.HTTP_200_OK, response_model=schemas.Token)
def login(credentials: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = authenticate(db, credentials.username, credentials.password)
    if user is None:
        # same answer for unknown user and wrong password
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Invalid Credentials")

    token = oauth2.create_access_token({"user_id": str(user.id)})
    return {"access_token": token, "token_type": "bearer"}
