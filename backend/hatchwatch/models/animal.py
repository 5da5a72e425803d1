from sqlalchemy import Column, Integer, String

from hatchwatch.database import Base


class Animal(Base):
    """Static lookup of incubated species, joined for display labels."""
    __tablename__ = "animals"

    id = Column(String(50), primary_key=True)
    name = Column(String(100), nullable=True)
    incubation_days = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<Animal(id={self.id!r}, name={self.name!r})>"
