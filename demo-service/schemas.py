from pydantic import BaseModel

class GreetingResponse(BaseModel):
    message: str

class UserResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True  # Pour compatibilité Pydantic v2
