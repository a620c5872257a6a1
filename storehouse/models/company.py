"""
SQLAlchemy models for company organisation data
"""
import enum

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from storehouse.database import Base


class Role(str, enum.Enum):
    """Caller roles carried in the identity token"""
    COMPANY_MANAGER = "CompanyManager"
    STOREHOUSE_MANAGER = "StorehouseManager"
    WORKER = "Worker"


class Company(Base):
    """Tenant company"""
    
    __tablename__ = "companies"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    business_number = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone_number = Column(String(30), nullable=True)
    address = Column(String(255), nullable=True)
    industry = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    storehouses = relationship("Storehouse", back_populates="company")
    
    def __repr__(self):
        return f"<Company(id={self.id}, name='{self.name}')>"


class Storehouse(Base):
    """Physical storehouse owned by a company"""
    
    __tablename__ = "storehouses"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    location = Column(String(255), nullable=True)
    size_m2 = Column(Float, nullable=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True, index=True)
    
    company = relationship("Company", back_populates="storehouses")
    sections = relationship("Section", back_populates="storehouse")
    
    def __repr__(self):
        return f"<Storehouse(id={self.id}, name='{self.name}')>"


class Section(Base):
    """Section inside a storehouse where products are kept"""
    
    __tablename__ = "sections"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    storehouse_id = Column(Integer, ForeignKey("storehouses.id"), nullable=True, index=True)
    
    storehouse = relationship("Storehouse", back_populates="sections")
    
    def __repr__(self):
        return f"<Section(id={self.id}, name='{self.name}')>"


class User(Base):
    """Application user (manager or worker)"""
    
    __tablename__ = "users"
    
    id = Column(String(64), primary_key=True)
    user_name = Column(String(150), nullable=False, unique=True)
    email = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False, default=Role.WORKER.value)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True, index=True)
    storehouse_id = Column(Integer, ForeignKey("storehouses.id"), nullable=True)
    
    def __repr__(self):
        return f"<User(id='{self.id}', user_name='{self.user_name}', role='{self.role}')>"
