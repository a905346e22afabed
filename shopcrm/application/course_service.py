from sqlalchemy.orm import Session
from shopcrm.domain.errors import NotFoundError, ValidationFailed
from shopcrm.domain.models import Course, Customer, Enrollment
from .schemas import CourseCreate, CourseUpdate
from typing import List, Optional

COURSE_FIELDS = ("id", "name", "price", "duration", "is_active")

class CourseService:
    def __init__(self, db: Session):
        self.db = db

    def list(self, include_inactive: bool = True, search: Optional[str] = None) -> List[Course]:
        query = self.db.query(Course)
        if not include_inactive:
            query = query.filter(Course.is_active.is_(True))
        if search:
            query = query.filter(Course.name.ilike(f"%{search}%"))
        return query.order_by(Course.created_at.desc(), Course.id.desc()).all()

    def get(self, course_id: int) -> Course:
        course = self.db.query(Course).filter(Course.id == course_id).first()
        if not course:
            raise NotFoundError("Course not found")
        return course

    def create(self, data: CourseCreate) -> Course:
        obj = Course(**data.model_dump())
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def update(self, course_id: int, data: CourseUpdate) -> Course:
        course = self.get(course_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is not None or key in ("description", "duration"):
                setattr(course, key, value)
        self.db.commit()
        self.db.refresh(course)
        return course

    def delete(self, course_id: int) -> Course:
        course = self.get(course_id)
        enrolled = self.db.query(Enrollment).filter(Enrollment.course_id == course_id).count()
        if enrolled:
            raise ValidationFailed("Customers are enrolled in this course; remove their enrollments first")
        self.db.delete(course)
        self.db.commit()
        return course

    def enrollments_for(self, customer_id: int) -> List[Enrollment]:
        return (
            self.db.query(Enrollment)
            .filter(Enrollment.customer_id == customer_id)
            .order_by(Enrollment.enrolled_at)
            .all()
        )

    def enroll(self, customer_id: int, course_id: int) -> Enrollment:
        if not self.db.query(Customer).filter(Customer.id == customer_id).first():
            raise NotFoundError("Customer not found")
        course = self.get(course_id)
        if not course.is_active:
            raise ValidationFailed("Course is not active")
        existing = (
            self.db.query(Enrollment)
            .filter(Enrollment.customer_id == customer_id, Enrollment.course_id == course_id)
            .first()
        )
        if existing:
            raise ValidationFailed("Customer is already enrolled in this course")
        enrollment = Enrollment(customer_id=customer_id, course_id=course_id, status="ENROLLED")
        self.db.add(enrollment)
        self.db.commit()
        self.db.refresh(enrollment)
        return enrollment

    def unenroll(self, customer_id: int, enrollment_id: int) -> Enrollment:
        enrollment = (
            self.db.query(Enrollment)
            .filter(Enrollment.id == enrollment_id, Enrollment.customer_id == customer_id)
            .first()
        )
        if not enrollment:
            raise NotFoundError("Enrollment not found")
        self.db.delete(enrollment)
        self.db.commit()
        return enrollment
