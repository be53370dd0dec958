# app/routers/issues_stats.py
from fastapi import APIRouter, Depends

from app.db.session import get_db
from app.models.issue import COLLECTION as ISSUES, IssueRecord
from app.services import queries
from app.services.stats import overview_stats

router = APIRouter(prefix="/issues/stats", tags=["issues:stats"])

@router.get("/overview")
def overview(db=Depends(get_db)):
    issues = queries.stream_all(db.collection(ISSUES), IssueRecord.from_snapshot)
    return overview_stats(issues)
